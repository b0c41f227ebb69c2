"""
Session orchestrator.

Maps a Topology onto a live tmux session: one window per app, named after
the app, created in declaration order. Re-running against an existing
session only creates the windows that are missing; running windows and
windows for apps no longer declared are never touched.

tmux is treated as the source of truth. The window list is re-read before
every window creation so that concurrent runs, or manual changes made in
tmux, are observed rather than overwritten.
"""

from dataclasses import dataclass, field
from pathlib import Path

from ..config.loader import Topology
from ..terminal.presenter import NullPresenter, TerminalPresenter
from ..tmux.logging_utils import log_unmanaged_windows, log_window_reused
from ..tmux.service import BOOTSTRAP_WINDOW_NAME, TmuxDriver, WindowRef
from ..utils.logging import (
    ConfigError,
    DevplexerException,
    LogContext,
    PartialSessionError,
    PresenterUnavailable,
    SessionCreateError,
    WindowCreateError,
    get_logger,
    log_performance,
)
from .enums import AppStatus
from .naming import DEFAULT_SESSION_PREFIX, derive_session_id

logger = get_logger(__name__, LogContext.ORCHESTRATOR)


@dataclass(frozen=True)
class WindowBinding:
    """An app bound to a live window."""

    app_name: str
    window_id: str
    window_index: int

    @classmethod
    def from_window(cls, app_name: str, window: WindowRef) -> "WindowBinding":
        return cls(
            app_name=app_name,
            window_id=window.window_id,
            window_index=window.window_index,
        )


@dataclass
class AppOutcome:
    """What happened to one app during ensure_session."""

    app_name: str
    status: AppStatus
    binding: WindowBinding | None = None
    error: DevplexerException | None = None

    @property
    def ok(self) -> bool:
        return self.status is not AppStatus.FAILED


@dataclass
class SessionHandle:
    """Result of ensure_session."""

    session_id: str
    created: bool
    outcomes: list[AppOutcome] = field(default_factory=list)
    unmanaged_windows: list[str] = field(default_factory=list)
    presenter_warning: str | None = None

    @property
    def bindings(self) -> list[WindowBinding]:
        return [o.binding for o in self.outcomes if o.binding is not None]

    @property
    def succeeded(self) -> list[AppOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[AppOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "created": self.created,
            "apps": [
                {
                    "app": o.app_name,
                    "status": o.status.value,
                    "window_id": o.binding.window_id if o.binding else None,
                    "window_index": o.binding.window_index if o.binding else None,
                    "error": o.error.message if o.error else None,
                }
                for o in self.outcomes
            ],
            "unmanaged_windows": self.unmanaged_windows,
            "presenter_warning": self.presenter_warning,
        }


@dataclass(frozen=True)
class _ResolvedApp:
    name: str
    working_directory: Path
    command: str


class SessionOrchestrator:
    """Reconciles a Topology against tmux and reports per-app outcomes."""

    def __init__(
        self,
        driver: TmuxDriver,
        presenter: TerminalPresenter | None = None,
        *,
        invocation_dir: Path | None = None,
        fail_fast: bool = True,
        session_prefix: str = DEFAULT_SESSION_PREFIX,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            driver: Multiplexer driver
            presenter: Terminal presenter; defaults to doing nothing
            invocation_dir: Base for relative working directories (default: cwd)
            fail_fast: Reject the whole topology if any working directory is
                missing, instead of failing only the affected apps
            session_prefix: Prefix for derived session names
        """
        self.driver = driver
        self.presenter = presenter or NullPresenter()
        self.invocation_dir = invocation_dir or Path.cwd()
        self.fail_fast = fail_fast
        self.session_prefix = session_prefix

    def session_id_for(self, topology: Topology) -> str:
        return derive_session_id(topology.namespace, self.session_prefix)

    def resolve_working_directory(self, path: Path | None) -> Path:
        """Resolve an app's working directory against the invocation directory."""
        if path is None:
            return self.invocation_dir
        path = path.expanduser()
        if path.is_absolute():
            return path
        return (self.invocation_dir / path).resolve()

    @log_performance(LogContext.ORCHESTRATOR)
    def ensure_session(self, topology: Topology) -> SessionHandle:
        """Make sure every app in the topology has a window in its session.

        Returns:
            SessionHandle with one outcome per app, in declaration order

        Raises:
            ConfigError: If the namespace is invalid, or a working directory is
                missing and fail_fast is set; nothing has been changed in tmux
            DriverUnavailable: If tmux cannot be reached
            PartialSessionError: If any app failed; the session stays live and
                the error carries the handle
        """
        session_id = self.session_id_for(topology)
        logger.set_session_id(session_id)

        resolved, invalid = self._resolve_apps(topology)
        if invalid and self.fail_fast:
            raise ConfigError(
                f"Working directory missing for app(s): {', '.join(invalid)}",
                context={
                    name: err.context["working_directory"]
                    for name, err in invalid.items()
                },
            )
        if not resolved:
            handle = SessionHandle(session_id=session_id, created=False)
            handle.outcomes = [
                AppOutcome(name, AppStatus.FAILED, error=err)
                for name, err in invalid.items()
            ]
            raise PartialSessionError(handle)

        created = False
        if not self.driver.session_exists(session_id):
            start_dir = resolved[0].working_directory
            try:
                self.driver.create_session(session_id, start_dir)
                created = True
            except SessionCreateError as e:
                if not self.driver.session_exists(session_id):
                    handle = SessionHandle(session_id=session_id, created=False)
                    handle.outcomes = [
                        AppOutcome(name, AppStatus.FAILED, error=invalid.get(name, e))
                        for name in topology.app_names
                    ]
                    raise PartialSessionError(handle) from e
                logger.info(
                    "Session was created concurrently, reconciling instead",
                    session_name=session_id,
                )

        handle = SessionHandle(session_id=session_id, created=created)
        by_name = {app.name: app for app in resolved}
        for name in topology.app_names:
            if name in invalid:
                handle.outcomes.append(
                    AppOutcome(name, AppStatus.FAILED, error=invalid[name])
                )
                continue
            handle.outcomes.append(self._ensure_window(session_id, by_name[name]))

        self.driver.remove_bootstrap_window(session_id)

        # Indexes can shift when the bootstrap window goes (renumber-windows)
        windows = self.driver.list_windows(session_id)
        by_id = {w.window_id: w for w in windows}
        for outcome in handle.outcomes:
            if outcome.binding and outcome.binding.window_id in by_id:
                outcome.binding = WindowBinding.from_window(
                    outcome.app_name, by_id[outcome.binding.window_id]
                )

        declared = set(topology.app_names)
        handle.unmanaged_windows = [
            w.name
            for w in windows
            if w.name not in declared and w.name != BOOTSTRAP_WINDOW_NAME
        ]
        log_unmanaged_windows(session_id, handle.unmanaged_windows)

        if handle.bindings:
            self._present(handle)

        if handle.failed:
            logger.warning(
                "Session incomplete",
                session_name=session_id,
                failed=[o.app_name for o in handle.failed],
            )
            raise PartialSessionError(handle)

        logger.info(
            "Session ready",
            session_name=session_id,
            created=created,
            apps=len(handle.outcomes),
        )
        return handle

    def _resolve_apps(
        self, topology: Topology
    ) -> tuple[list[_ResolvedApp], dict[str, ConfigError]]:
        resolved: list[_ResolvedApp] = []
        invalid: dict[str, ConfigError] = {}
        for name, spec in topology.apps.items():
            directory = self.resolve_working_directory(spec.working_directory)
            if not directory.is_dir():
                invalid[name] = ConfigError(
                    f"Working directory does not exist: {directory}",
                    context={"app": name, "working_directory": str(directory)},
                )
                continue
            resolved.append(_ResolvedApp(name, directory, spec.command))
        return resolved, invalid

    def _ensure_window(self, session_id: str, app: _ResolvedApp) -> AppOutcome:
        existing = self._find_window(session_id, app.name)
        if existing is not None:
            log_window_reused(session_id, app.name)
            return AppOutcome(
                app.name,
                AppStatus.ALREADY_RUNNING,
                binding=WindowBinding.from_window(app.name, existing),
            )

        try:
            window = self.driver.create_window(
                session_id, app.name, app.working_directory, app.command
            )
        except WindowCreateError as e:
            # Another run may have created it between our check and our create
            raced = self._find_window(session_id, app.name)
            if raced is not None:
                log_window_reused(session_id, app.name)
                return AppOutcome(
                    app.name,
                    AppStatus.ALREADY_RUNNING,
                    binding=WindowBinding.from_window(app.name, raced),
                )
            logger.error(
                f"Failed to start app {app.name}: {e.message}",
                session_name=session_id,
                app=app.name,
            )
            return AppOutcome(app.name, AppStatus.FAILED, error=e)

        return AppOutcome(
            app.name,
            AppStatus.CREATED,
            binding=WindowBinding.from_window(app.name, window),
        )

    def _find_window(self, session_id: str, name: str) -> WindowRef | None:
        for window in self.driver.list_windows(session_id):
            if window.name == name:
                return window
        return None

    def _present(self, handle: SessionHandle) -> None:
        try:
            self.presenter.focus_session(handle.session_id)
        except PresenterUnavailable as e:
            handle.presenter_warning = e.message
            logger.warning(
                f"Could not focus session: {e.message}",
                session_name=handle.session_id,
                presenter=self.presenter.name,
            )
