"""Main CLI entry point for devplexer."""

from pathlib import Path

import click

from .. import __version__
from ..config.settings import load_settings
from ..utils.logging import ConfigError, setup_logging
from .session import down, status, up, validate


@click.group()
@click.version_option(version=__version__, prog_name="devplexer")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
# Settings override flags
@click.option("--log-level", help="Override log_level setting")
@click.option("--log-file", help="Override log_file setting")
@click.option(
    "--log-format", type=click.Choice(["human", "json"]), help="Override log_format setting"
)
@click.option(
    "--presenter",
    type=click.Choice(["auto", "iterm", "terminal", "tmux", "attach", "none"]),
    help="Terminal integration used to show the session",
)
@click.option("--session-prefix", help="Override session_prefix setting")
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    json: bool,
    log_level: str | None,
    log_file: str | None,
    log_format: str | None,
    presenter: str | None,
    session_prefix: str | None,
) -> None:
    """devplexer - Run a project's dev processes side by side in tmux.

    Declare your apps in devplexer.yaml:

    \b
        namespace: myproject
        apps:
          api:
            command: make run
          ui:
            working_directory: ui
            command: npm run dev

    then run `devplexer up`. Re-running is safe: apps that are already
    running are left alone and only missing windows are created.
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet options")

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["json"] = json

    cli_overrides = {
        "log_level": log_level,
        "log_file": log_file,
        "log_format": log_format,
        "presenter": presenter,
        "session_prefix": session_prefix,
    }
    try:
        settings = load_settings(cli_overrides=cli_overrides)
    except ConfigError as e:
        raise click.UsageError(e.message) from e
    ctx.obj["settings"] = settings

    level = settings.log_level
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "ERROR"
    setup_logging(
        log_level=level,
        log_file=Path(settings.log_file).expanduser() if settings.log_file else None,
        enable_structured=settings.log_format == "json",
    )


main.add_command(up)
main.add_command(status)
main.add_command(down)
main.add_command(validate)


if __name__ == "__main__":
    main()
