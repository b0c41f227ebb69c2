"""
Tmux driver.

Thin capability layer over libtmux used by the session orchestrator. Every
call queries tmux directly; nothing about sessions or windows is cached, since
tmux itself is the only record of what is running.
"""

from dataclasses import dataclass
from pathlib import Path

import libtmux
import psutil
from libtmux import exc as tmux_exc

from ..utils.logging import (
    DriverUnavailable,
    SessionCreateError,
    WindowCreateError,
)
from .logging_utils import (
    log_session_operation,
    log_window_created,
    tmux_logger,
)

# tmux cannot create an empty session, so new sessions start with this window
BOOTSTRAP_WINDOW_NAME = "devplexer-bootstrap"

# Seconds to wait after each stop signal before escalating
STOP_TIMEOUT = 3.0


@dataclass(frozen=True)
class SessionRef:
    """A live tmux session."""

    session_id: str
    tmux_id: str


@dataclass(frozen=True)
class WindowRef:
    """A live tmux window."""

    name: str
    window_id: str
    window_index: int


@dataclass(frozen=True)
class WindowStatus:
    """Observed state of a window's pane process."""

    name: str
    window_id: str
    window_index: int
    pane_pid: int | None
    current_command: str | None
    alive: bool


def _install_hint() -> str:
    return (
        "Install tmux and retry. On Debian/Ubuntu: sudo apt-get install -y tmux; "
        "on macOS: brew install tmux"
    )


def _typed_command(command: str) -> str:
    # tmux reads an argument ending in ";" as a command separator
    if command.endswith(";"):
        return command + " "
    return command


def attach_command(session_id: str) -> list[str]:
    """Argv that attaches a terminal to the session, detaching other clients."""
    return ["tmux", "attach-session", "-d", "-t", f"={session_id}"]


class TmuxDriver:
    """Session and window operations against the local tmux server."""

    def __init__(self, server: libtmux.Server | None = None):
        """Initialize tmux driver.

        Args:
            server: libtmux server to use; defaults to the user's default socket
        """
        self._server = server if server is not None else libtmux.Server()

    def session_exists(self, session_id: str) -> bool:
        """Check if a tmux session exists.

        Raises:
            DriverUnavailable: If tmux cannot be run
        """
        try:
            return self._server.has_session(session_id, exact=True)
        except tmux_exc.TmuxCommandNotFound as e:
            raise DriverUnavailable(
                f"tmux not found on PATH. {_install_hint()}"
            ) from e
        except tmux_exc.LibTmuxException as e:
            raise DriverUnavailable(
                f"Failed to query tmux for session {session_id}: {e}",
                context={"session_id": session_id},
            ) from e

    def create_session(self, session_id: str, start_directory: Path) -> SessionRef:
        """Create a detached session holding only the bootstrap window.

        Raises:
            SessionCreateError: If tmux refuses to create the session
            DriverUnavailable: If tmux cannot be run
        """
        log_session_operation("create", session_id, "starting")
        try:
            session = self._server.new_session(
                session_name=session_id,
                start_directory=str(start_directory),
                window_name=BOOTSTRAP_WINDOW_NAME,
                attach=False,
            )
        except tmux_exc.TmuxCommandNotFound as e:
            raise DriverUnavailable(f"tmux not found on PATH. {_install_hint()}") from e
        except tmux_exc.TmuxSessionExists as e:
            log_session_operation("create", session_id, "error", {"error": "exists"})
            raise SessionCreateError(
                f"Session {session_id} already exists",
                context={"session_id": session_id, "exists": True},
            ) from e
        except tmux_exc.LibTmuxException as e:
            log_session_operation("create", session_id, "error", {"error": str(e)})
            raise SessionCreateError(
                f"Failed to create session {session_id}: {e}",
                context={"session_id": session_id},
            ) from e

        log_session_operation("create", session_id, "success")
        return SessionRef(session_id=session_id, tmux_id=session.session_id)

    def list_windows(self, session_id: str) -> list[WindowRef]:
        """List the session's windows in index order; empty if the session is gone.

        Raises:
            DriverUnavailable: If tmux cannot be run
        """
        session = self._find_session(session_id)
        if session is None:
            return []
        try:
            windows = [self._window_ref(w) for w in session.windows]
        except tmux_exc.LibTmuxException as e:
            raise DriverUnavailable(
                f"Failed to list windows of {session_id}: {e}",
                context={"session_id": session_id},
            ) from e
        return sorted(windows, key=lambda w: w.window_index)

    def create_window(
        self, session_id: str, name: str, working_directory: Path, command: str
    ) -> WindowRef:
        """Create a window for an app and start its command in the window's shell.

        The command is typed into the window's shell verbatim, so the window
        outlives the command and its output stays visible.

        Raises:
            WindowCreateError: If the directory is unusable or tmux fails
        """
        if not working_directory.is_dir():
            raise WindowCreateError(
                f"Working directory does not exist: {working_directory}",
                context={"window": name, "working_directory": str(working_directory)},
            )

        session = self._find_session(session_id)
        if session is None:
            raise WindowCreateError(
                f"Session {session_id} disappeared before window {name} was created",
                context={"session_id": session_id, "window": name},
            )

        try:
            # tmux fills the lowest free index by default; apps always go last
            next_index = max(
                (int(w.window_index) for w in session.windows if w.window_index),
                default=-1,
            ) + 1
            window = session.new_window(
                window_name=name,
                start_directory=str(working_directory),
                attach=False,
                window_index=str(next_index),
            )
            pane = window.panes[0]
            pane.send_keys(_typed_command(command), enter=True, literal=True)
        except tmux_exc.LibTmuxException as e:
            raise WindowCreateError(
                f"Failed to create window {name} in {session_id}: {e}",
                context={"session_id": session_id, "window": name},
            ) from e

        ref = self._window_ref(window)
        log_window_created(session_id, name, ref.window_index, command)
        return ref

    def remove_bootstrap_window(self, session_id: str) -> bool:
        """Kill the bootstrap window once other windows exist.

        Returns:
            True if a bootstrap window was removed
        """
        session = self._find_session(session_id)
        if session is None:
            return False

        windows = list(session.windows)
        bootstrap = [w for w in windows if w.window_name == BOOTSTRAP_WINDOW_NAME]
        if not bootstrap or len(bootstrap) == len(windows):
            return False

        for window in bootstrap:
            try:
                window.kill()
            except tmux_exc.LibTmuxException as e:
                tmux_logger.warning(
                    "Failed to remove bootstrap window",
                    session_name=session_id,
                    error=str(e),
                )
                return False
        tmux_logger.debug("Bootstrap window removed", session_name=session_id)
        return True

    def describe_windows(self, session_id: str) -> list[WindowStatus]:
        """Report each window's pane process, for status displays."""
        session = self._find_session(session_id)
        if session is None:
            return []

        statuses = []
        for window in session.windows:
            ref = self._window_ref(window)
            pane = window.panes[0] if window.panes else None
            pid = int(pane.pane_pid) if pane is not None and pane.pane_pid else None
            statuses.append(
                WindowStatus(
                    name=ref.name,
                    window_id=ref.window_id,
                    window_index=ref.window_index,
                    pane_pid=pid,
                    current_command=pane.pane_current_command if pane else None,
                    alive=_process_alive(pid),
                )
            )
        return sorted(statuses, key=lambda s: s.window_index)

    def kill_session(self, session_id: str, timeout: float = STOP_TIMEOUT) -> bool:
        """Stop every app in the session, then kill the session.

        Each pane gets C-c first. Processes still running after ``timeout``
        seconds are terminated, and killed if they outlive a second timeout.

        Returns:
            True if the session existed and was killed
        """
        session = self._find_session(session_id)
        if session is None:
            tmux_logger.warning(f"Session {session_id} does not exist")
            return False

        log_session_operation("stop", session_id, "starting")
        processes = []
        for window in session.windows:
            for pane in window.panes:
                processes.extend(_pane_processes(pane.pane_pid))
                try:
                    pane.send_keys("C-c", enter=False)
                except tmux_exc.LibTmuxException as e:
                    tmux_logger.warning(
                        "Failed to interrupt pane",
                        session_name=session_id,
                        window_name=window.window_name,
                        error=str(e),
                    )
        stop_processes(processes, timeout)

        try:
            session.kill()
        except tmux_exc.LibTmuxException as e:
            log_session_operation("destroy", session_id, "error", {"error": str(e)})
            raise DriverUnavailable(f"Failed to kill session {session_id}: {e}") from e
        log_session_operation("destroy", session_id, "success")
        return True

    def _find_session(self, session_id: str) -> libtmux.Session | None:
        try:
            return self._server.sessions.get(session_name=session_id, default=None)
        except tmux_exc.TmuxCommandNotFound as e:
            raise DriverUnavailable(f"tmux not found on PATH. {_install_hint()}") from e
        except tmux_exc.LibTmuxException as e:
            raise DriverUnavailable(
                f"Failed to query tmux for session {session_id}: {e}",
                context={"session_id": session_id},
            ) from e

    @staticmethod
    def _window_ref(window: libtmux.Window) -> WindowRef:
        return WindowRef(
            name=window.window_name or "",
            window_id=window.window_id or "",
            window_index=int(window.window_index or 0),
        )


def _process_alive(pid: int | None) -> bool:
    if pid is None:
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.AccessDenied:
        return True
    except psutil.NoSuchProcess:
        return False


def _pane_processes(pane_pid: str | int | None) -> list[psutil.Process]:
    """Processes started from a pane's shell, deepest first."""
    if not pane_pid:
        return []
    try:
        children = psutil.Process(int(pane_pid)).children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return []
    return list(reversed(children))


def stop_processes(processes: list[psutil.Process], timeout: float = STOP_TIMEOUT) -> None:
    """Wait for processes to exit, escalating to SIGTERM and then SIGKILL."""
    if not processes:
        return

    _, alive = psutil.wait_procs(processes, timeout=timeout)
    for signal_name, send in (("SIGTERM", "terminate"), ("SIGKILL", "kill")):
        if not alive:
            return
        tmux_logger.info(
            f"{len(alive)} process(es) still running, sending {signal_name}",
            pids=[p.pid for p in alive],
        )
        for process in alive:
            try:
                getattr(process, send)()
            except psutil.NoSuchProcess:
                continue  # exited meanwhile
            except psutil.AccessDenied:
                tmux_logger.warning(
                    f"Not allowed to send {signal_name}", pid=process.pid
                )
        _, alive = psutil.wait_procs(alive, timeout=timeout)

    if alive:
        tmux_logger.warning(
            "Processes survived SIGKILL", pids=[p.pid for p in alive]
        )
