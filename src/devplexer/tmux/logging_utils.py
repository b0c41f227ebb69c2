"""Logging utilities for tmux operations."""

from typing import Any

from ..utils.logging import LogContext, get_logger

tmux_logger = get_logger("devplexer.tmux", LogContext.TMUX)


def log_session_operation(
    operation: str, session_name: str, status: str, context: dict[str, Any] | None = None
) -> None:
    """Log session operation."""
    message = f"Session {operation} {status} - {session_name}"
    if context:
        message += f" - {context}"

    if status == "error":
        tmux_logger.error(message, session_name=session_name, operation=operation)
    else:
        tmux_logger.info(message, session_name=session_name, operation=operation)


def log_window_created(
    session_name: str, window_name: str, window_index: int, command: str
) -> None:
    """Log window creation for an app."""
    tmux_logger.info(
        f"Window created - {session_name}:{window_index} ({window_name})",
        session_name=session_name,
        window_name=window_name,
        window_index=window_index,
        command=command,
    )


def log_window_reused(session_name: str, window_name: str) -> None:
    """Log an app whose window is already running."""
    tmux_logger.info(
        f"Window already running - {session_name} ({window_name})",
        session_name=session_name,
        window_name=window_name,
    )


def log_unmanaged_windows(session_name: str, windows: list[str]) -> None:
    """Log windows that exist in the session but not in the topology."""
    if windows:
        tmux_logger.warning(
            f"Leaving windows not in topology untouched - {session_name}: {windows}",
            session_name=session_name,
            windows=windows,
        )
