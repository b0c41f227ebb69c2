"""CLI commands that bring a topology's session up, inspect it and tear it down."""

from pathlib import Path

import click

from ..config.loader import Topology, load_topology
from ..core.enums import AppStatus
from ..core.orchestrator import SessionHandle, SessionOrchestrator
from ..terminal.presenter import NullPresenter, select_presenter
from ..tmux.service import BOOTSTRAP_WINDOW_NAME, TmuxDriver, attach_command
from ..utils.logging import PartialSessionError
from .utils import (
    EXIT_FAILURE,
    EXIT_PARTIAL,
    CliError,
    error_handler,
    get_settings,
    is_json,
    output_json,
    output_table,
    quiet_echo,
    success_message,
    verbose_echo,
    warning_message,
)

topology_argument = click.argument(
    "topology_file",
    required=False,
    type=click.Path(dir_okay=False, path_type=Path),
)

STATUS_LABELS = {
    AppStatus.CREATED: "started",
    AppStatus.ALREADY_RUNNING: "already running",
    AppStatus.FAILED: "FAILED",
}


def _load(ctx: click.Context, topology_file: Path | None) -> Topology:
    settings = get_settings(ctx)
    topology = load_topology(topology_file or settings.topology_file)
    verbose_echo(
        ctx, f"Loaded namespace '{topology.namespace}' with {len(topology.apps)} app(s)"
    )
    return topology


def _orchestrator(
    ctx: click.Context, *, fail_fast: bool = True, focus: bool = False
) -> SessionOrchestrator:
    settings = get_settings(ctx)
    presenter = select_presenter(settings.presenter) if focus else NullPresenter()
    return SessionOrchestrator(
        TmuxDriver(),
        presenter,
        fail_fast=fail_fast,
        session_prefix=settings.session_prefix,
    )


def _report(ctx: click.Context, handle: SessionHandle) -> None:
    if is_json(ctx):
        output_json(handle.to_dict())
        return

    state = "created" if handle.created else "reused"
    if handle.failed:
        warning_message(
            f"Session '{handle.session_id}' {state} with "
            f"{len(handle.failed)} of {len(handle.outcomes)} app(s) failing"
        )
    else:
        success_message(f"Session '{handle.session_id}' ready ({state})")

    rows = []
    for outcome in handle.outcomes:
        window = str(outcome.binding.window_index) if outcome.binding else "-"
        detail = outcome.error.message if outcome.error else ""
        rows.append([outcome.app_name, STATUS_LABELS[outcome.status], window, detail])
    output_table(["APP", "STATUS", "WINDOW", "DETAIL"], rows)

    if handle.unmanaged_windows:
        quiet_echo(
            ctx,
            "Left untouched (not in topology): " + ", ".join(handle.unmanaged_windows),
        )
    if handle.presenter_warning:
        warning_message(f"Could not open a terminal: {handle.presenter_warning}")
        quiet_echo(ctx, "Attach with: " + " ".join(attach_command(handle.session_id)))


@click.command()
@topology_argument
@click.option(
    "--keep-going",
    is_flag=True,
    help="Start the other apps even if some working directories are missing",
)
@click.option("--no-focus", is_flag=True, help="Do not open or focus a terminal")
@click.pass_context
@error_handler
def up(
    ctx: click.Context, topology_file: Path | None, keep_going: bool, no_focus: bool
) -> None:
    """Start every app in the topology in its own tmux window.

    TOPOLOGY_FILE: Topology to load (default: ./devplexer.yaml)
    """
    topology = _load(ctx, topology_file)
    orchestrator = _orchestrator(ctx, fail_fast=not keep_going, focus=not no_focus)

    try:
        handle = orchestrator.ensure_session(topology)
    except PartialSessionError as e:
        _report(ctx, e.handle)
        # Exit 3 only when something is actually running
        exit_code = EXIT_PARTIAL if e.handle.succeeded else EXIT_FAILURE
        raise CliError(e.message, exit_code=exit_code)

    _report(ctx, handle)


@click.command()
@topology_argument
@click.pass_context
@error_handler
def status(ctx: click.Context, topology_file: Path | None) -> None:
    """Show each app's window and process without changing anything.

    TOPOLOGY_FILE: Topology to load (default: ./devplexer.yaml)
    """
    topology = _load(ctx, topology_file)
    orchestrator = _orchestrator(ctx)
    session_id = orchestrator.session_id_for(topology)
    driver = orchestrator.driver

    if not driver.session_exists(session_id):
        if is_json(ctx):
            output_json({"session_id": session_id, "running": False, "apps": []})
        else:
            click.echo(f"Session '{session_id}' is not running")
        return

    windows = {
        w.name: w for w in driver.describe_windows(session_id)
        if w.name != BOOTSTRAP_WINDOW_NAME
    }
    apps = []
    for name in topology.app_names:
        window = windows.pop(name, None)
        apps.append(
            {
                "app": name,
                "declared": True,
                "window_index": window.window_index if window else None,
                "pid": window.pane_pid if window else None,
                "command": window.current_command if window else None,
                "state": ("running" if window.alive else "exited") if window else "missing",
            }
        )
    for name, window in windows.items():
        apps.append(
            {
                "app": name,
                "declared": False,
                "window_index": window.window_index,
                "pid": window.pane_pid,
                "command": window.current_command,
                "state": "running" if window.alive else "exited",
            }
        )

    if is_json(ctx):
        output_json({"session_id": session_id, "running": True, "apps": apps})
        return

    click.echo(f"Session: {session_id}")
    output_table(
        ["APP", "WINDOW", "PID", "COMMAND", "STATE"],
        [
            [
                app["app"] if app["declared"] else f"{app['app']} (not in topology)",
                "-" if app["window_index"] is None else str(app["window_index"]),
                "-" if app["pid"] is None else str(app["pid"]),
                app["command"] or "-",
                app["state"],
            ]
            for app in apps
        ],
    )


@click.command()
@topology_argument
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
@error_handler
def down(ctx: click.Context, topology_file: Path | None, yes: bool) -> None:
    """Stop every app (C-c, then SIGTERM, then SIGKILL) and kill the session.

    TOPOLOGY_FILE: Topology to load (default: ./devplexer.yaml)
    """
    topology = _load(ctx, topology_file)
    orchestrator = _orchestrator(ctx)
    session_id = orchestrator.session_id_for(topology)

    if not orchestrator.driver.session_exists(session_id):
        raise CliError(f"Session '{session_id}' is not running")

    if not yes:
        click.confirm(
            f"Kill session '{session_id}' and all processes in it?", abort=True
        )

    orchestrator.driver.kill_session(session_id)
    if is_json(ctx):
        output_json({"session_id": session_id, "killed": True})
    else:
        success_message(f"Killed session '{session_id}'")


@click.command()
@topology_argument
@click.pass_context
@error_handler
def validate(ctx: click.Context, topology_file: Path | None) -> None:
    """Check the topology and show how it resolves, without touching tmux.

    TOPOLOGY_FILE: Topology to load (default: ./devplexer.yaml)
    """
    topology = _load(ctx, topology_file)
    orchestrator = _orchestrator(ctx)
    session_id = orchestrator.session_id_for(topology)

    apps = []
    for name, spec in topology.apps.items():
        directory = orchestrator.resolve_working_directory(spec.working_directory)
        apps.append(
            {
                "app": name,
                "command": spec.command,
                "working_directory": str(directory),
                "exists": directory.is_dir(),
            }
        )
    missing = [app["app"] for app in apps if not app["exists"]]

    if is_json(ctx):
        output_json(
            {
                "namespace": topology.namespace,
                "session_id": session_id,
                "apps": apps,
                "valid": not missing,
            }
        )
    else:
        click.echo(f"Namespace: {topology.namespace}")
        click.echo(f"Session: {session_id}")
        output_table(
            ["APP", "WORKING DIRECTORY", "COMMAND"],
            [
                [
                    app["app"],
                    app["working_directory"] + ("" if app["exists"] else " (missing)"),
                    app["command"],
                ]
                for app in apps
            ],
        )

    if missing:
        raise CliError(f"Working directory missing for app(s): {', '.join(missing)}")
    if not is_json(ctx):
        success_message("Topology is valid")
