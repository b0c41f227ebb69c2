"""Terminal presenters.

A presenter makes a tmux session visible to the user once the orchestrator
has finished with it. Supports iTerm2 and Terminal.app on macOS, switching
the current client when already inside tmux, and attaching in the foreground.
"""

import os
import shlex
import subprocess  # nosec B404
import sys
from abc import ABC, abstractmethod
from pathlib import Path

from ..tmux.service import attach_command
from ..utils.logging import LogContext, PresenterUnavailable, get_logger

logger = get_logger(__name__, LogContext.PRESENTER)

OSASCRIPT_TIMEOUT = 15

# argv items are handed to the run handler, so nothing needs escaping
ITERM_SCRIPT = """
on run argv
    set attachCommand to item 1 of argv
    tell application "iTerm"
        activate
        if not (exists window 1) then
            create window with default profile
            tell current session of current window
                write text attachCommand
            end tell
        else
            tell current window
                set newTab to (create tab with default profile)
                tell current session of newTab
                    write text attachCommand
                end tell
            end tell
        end if
    end tell
end run
"""

TERMINAL_APP_SCRIPT = """
on run argv
    set attachCommand to item 1 of argv
    tell application "Terminal"
        activate
        do script attachCommand
    end tell
end run
"""


class TerminalPresenter(ABC):
    """Opens or focuses a terminal view of a tmux session."""

    name = "base"

    @abstractmethod
    def focus_session(self, session_id: str) -> None:
        """Show the session to the user.

        Raises:
            PresenterUnavailable: If the integration is missing or fails
        """


class NullPresenter(TerminalPresenter):
    """Leaves the session in the background."""

    name = "none"

    def focus_session(self, session_id: str) -> None:
        logger.debug("Presenter disabled, not focusing session", session_name=session_id)


class UnavailablePresenter(TerminalPresenter):
    """Stands in when no terminal integration could be detected."""

    name = "unavailable"

    def __init__(self, reason: str):
        self.reason = reason

    def focus_session(self, session_id: str) -> None:
        raise PresenterUnavailable(self.reason, context={"session_id": session_id})


def _run(argv: list[str], *, timeout: float | None = OSASCRIPT_TIMEOUT) -> None:
    try:
        result = subprocess.run(  # nosec B603
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise PresenterUnavailable(f"{argv[0]} not found on PATH") from e
    except subprocess.TimeoutExpired as e:
        raise PresenterUnavailable(f"{argv[0]} timed out after {timeout}s") from e

    if result.returncode != 0:
        details = result.stderr.strip() or result.stdout.strip() or "unknown error"
        raise PresenterUnavailable(
            f"{argv[0]} failed: {details}",
            context={"returncode": result.returncode},
        )


class AppleScriptPresenter(TerminalPresenter):
    """Runs an AppleScript that opens a tab executing the attach command."""

    script = ""
    application = ""

    def focus_session(self, session_id: str) -> None:
        if sys.platform != "darwin":
            raise PresenterUnavailable(
                f"{self.application} integration is only available on macOS"
            )
        command = shlex.join(attach_command(session_id))
        logger.debug(
            f"Opening {self.application} tab", session_name=session_id, command=command
        )
        _run(["osascript", "-e", self.script, command])
        logger.info(f"Session opened in {self.application}", session_name=session_id)


class ITermPresenter(AppleScriptPresenter):
    name = "iterm"
    script = ITERM_SCRIPT
    application = "iTerm"


class TerminalAppPresenter(AppleScriptPresenter):
    name = "terminal"
    script = TERMINAL_APP_SCRIPT
    application = "Terminal"


class TmuxClientPresenter(TerminalPresenter):
    """Switches the current tmux client to the session."""

    name = "tmux"

    def focus_session(self, session_id: str) -> None:
        if not os.environ.get("TMUX"):
            raise PresenterUnavailable("Not running inside a tmux client")
        _run(["tmux", "switch-client", "-t", f"={session_id}"])
        logger.info("Switched tmux client", session_name=session_id)


class AttachPresenter(TerminalPresenter):
    """Attaches the current terminal to the session; returns when it detaches."""

    name = "attach"

    def focus_session(self, session_id: str) -> None:
        # Attach inherits the current stdin/stdout
        try:
            result = subprocess.run(attach_command(session_id), check=False)  # nosec B603
        except FileNotFoundError as e:
            raise PresenterUnavailable("tmux not found on PATH") from e
        if result.returncode != 0:
            raise PresenterUnavailable(
                f"tmux attach exited with status {result.returncode}"
            )


PRESENTERS: dict[str, type[TerminalPresenter]] = {
    "iterm": ITermPresenter,
    "terminal": TerminalAppPresenter,
    "tmux": TmuxClientPresenter,
    "attach": AttachPresenter,
    "none": NullPresenter,
}


def iterm_installed() -> bool:
    """Check whether iTerm2 is the running terminal or is installed."""
    if os.environ.get("TERM_PROGRAM") == "iTerm.app":
        return True
    return any(
        path.exists()
        for path in (
            Path("/Applications/iTerm.app"),
            Path.home() / "Applications" / "iTerm.app",
        )
    )


def detect_presenter() -> TerminalPresenter:
    """Pick the best available integration for the current environment."""
    if os.environ.get("TMUX"):
        return TmuxClientPresenter()
    if sys.platform == "darwin":
        if iterm_installed():
            return ITermPresenter()
        return TerminalAppPresenter()
    return UnavailablePresenter(
        f"No terminal integration for platform {sys.platform}; "
        "attach with: " + shlex.join(attach_command("<session>"))
    )


def select_presenter(name: str = "auto") -> TerminalPresenter:
    """Map a presenter name to an implementation.

    Raises:
        ValueError: If the name is unknown
    """
    if name == "auto":
        return detect_presenter()
    try:
        return PRESENTERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown presenter {name!r}; choose from auto, {', '.join(PRESENTERS)}"
        ) from None
