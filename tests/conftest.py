"""
Pytest configuration and shared fixtures for devplexer tests.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from devplexer.config.loader import AppSpec, Topology
from devplexer.tmux.service import BOOTSTRAP_WINDOW_NAME, WindowRef, WindowStatus
from devplexer.utils.logging import SessionCreateError, WindowCreateError


class FakeDriver:
    """In-memory stand-in for TmuxDriver.

    Sessions map to ordered window dicts; every mutating call is recorded so
    tests can assert exactly what the orchestrator asked tmux to do. Windows
    created outside create_window take the lowest free index, as tmux does.
    """

    def __init__(self):
        self.sessions: dict[str, list[dict]] = {}
        self.calls: list[tuple] = []
        self.fail_windows: set[str] = set()
        self.renumber_windows = False
        self._next_id = 0

    def _new_window(
        self,
        session_id: str,
        name: str,
        directory: Path,
        command: str | None,
        index: int | None = None,
    ) -> dict:
        windows = self.sessions[session_id]
        if index is None:
            used = {w["index"] for w in windows}
            index = next(i for i in range(len(used) + 1) if i not in used)
        self._next_id += 1
        window = {
            "name": name,
            "id": f"@{self._next_id}",
            "index": index,
            "directory": directory,
            "command": command,
            "alive": True,
        }
        windows.append(window)
        return window

    def session_exists(self, session_id: str) -> bool:
        return session_id in self.sessions

    def create_session(self, session_id: str, start_directory: Path):
        self.calls.append(("create_session", session_id))
        if session_id in self.sessions:
            raise SessionCreateError(f"Session {session_id} already exists")
        self.sessions[session_id] = []
        self._new_window(session_id, BOOTSTRAP_WINDOW_NAME, start_directory, None)

    def list_windows(self, session_id: str) -> list[WindowRef]:
        return [
            WindowRef(name=w["name"], window_id=w["id"], window_index=w["index"])
            for w in sorted(self.sessions.get(session_id, []), key=lambda w: w["index"])
        ]

    def create_window(self, session_id: str, name: str, working_directory: Path, command: str) -> WindowRef:
        self.calls.append(("create_window", session_id, name))
        if name in self.fail_windows:
            raise WindowCreateError(f"Failed to create window {name}")
        if not working_directory.is_dir():
            raise WindowCreateError(f"Working directory does not exist: {working_directory}")
        if session_id not in self.sessions:
            raise WindowCreateError(f"Session {session_id} disappeared")
        last = max((w["index"] for w in self.sessions[session_id]), default=-1)
        window = self._new_window(session_id, name, working_directory, command, last + 1)
        return WindowRef(name=name, window_id=window["id"], window_index=window["index"])

    def remove_bootstrap_window(self, session_id: str) -> bool:
        windows = self.sessions.get(session_id, [])
        others = [w for w in windows if w["name"] != BOOTSTRAP_WINDOW_NAME]
        if not others or len(others) == len(windows):
            return False
        if self.renumber_windows:
            for index, window in enumerate(sorted(others, key=lambda w: w["index"])):
                window["index"] = index
        self.sessions[session_id] = others
        return True

    def describe_windows(self, session_id: str) -> list[WindowStatus]:
        return [
            WindowStatus(
                name=w["name"],
                window_id=w["id"],
                window_index=w["index"],
                pane_pid=1000 + w["index"],
                current_command=(w["command"] or "bash").split()[0],
                alive=w["alive"],
            )
            for w in sorted(self.sessions.get(session_id, []), key=lambda w: w["index"])
        ]

    def kill_session(self, session_id: str) -> bool:
        self.calls.append(("kill_session", session_id))
        return self.sessions.pop(session_id, None) is not None

    def window(self, session_id: str, name: str) -> dict:
        return next(w for w in self.sessions[session_id] if w["name"] == name)

    def window_names(self, session_id: str) -> list[str]:
        return [w.name for w in self.list_windows(session_id)]

    def created_windows(self) -> list[str]:
        return [call[2] for call in self.calls if call[0] == "create_window"]


@pytest.fixture
def fake_driver() -> FakeDriver:
    """Provide an empty in-memory tmux."""
    return FakeDriver()


@pytest.fixture
def make_topology():
    """Build a Topology from plain dicts."""

    def _make(namespace: str = "demo", **apps: dict) -> Topology:
        return Topology(
            namespace=namespace,
            apps={name: AppSpec(**spec) for name, spec in apps.items()},
        )

    return _make


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Invocation directory with a couple of app subdirectories."""
    (tmp_path / "sub").mkdir()
    (tmp_path / "api").mkdir()
    (tmp_path / "ui").mkdir()
    return tmp_path
