"""Terminal emulator integration."""

from .presenter import (
    AttachPresenter,
    ITermPresenter,
    NullPresenter,
    TerminalAppPresenter,
    TerminalPresenter,
    TmuxClientPresenter,
    UnavailablePresenter,
    detect_presenter,
    select_presenter,
)

__all__ = [
    "AttachPresenter",
    "ITermPresenter",
    "NullPresenter",
    "TerminalAppPresenter",
    "TerminalPresenter",
    "TmuxClientPresenter",
    "UnavailablePresenter",
    "detect_presenter",
    "select_presenter",
]
