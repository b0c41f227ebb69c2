"""CLI utilities for output formatting and common functionality."""

import json
import sys
from collections.abc import Callable
from functools import wraps
from typing import Any

import click

from ..config.settings import DevplexerSettings, load_settings
from ..utils.logging import DevplexerException

EXIT_OK = 0
EXIT_FAILURE = 1
# Some apps started, some did not; distinct so callers can tell it from "nothing started"
EXIT_PARTIAL = 3


class CliError(Exception):
    """Exception for CLI errors."""

    def __init__(self, message: str, exit_code: int = EXIT_FAILURE):
        """Initialize CLI error.

        Args:
            message: Error message
            exit_code: Exit code for the CLI
        """
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


def error_handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator for handling CLI errors."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.Abort):
            raise
        except CliError as e:
            click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
            sys.exit(e.exit_code)
        except DevplexerException as e:
            click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
            sys.exit(EXIT_FAILURE)
        except Exception as e:
            click.echo(click.style(f"Unexpected error: {e}", fg="red"), err=True)
            sys.exit(EXIT_FAILURE)

    return wrapper


def get_settings(ctx: click.Context) -> DevplexerSettings:
    """Settings loaded by the main group, or freshly loaded when run standalone."""
    if ctx.obj and ctx.obj.get("settings") is not None:
        return ctx.obj["settings"]
    return load_settings()


def is_json(ctx: click.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("json"))


def success_message(message: str) -> None:
    """Display a success message."""
    click.echo(click.style(f"✓ {message}", fg="green"))


def warning_message(message: str) -> None:
    """Display a warning on stderr."""
    click.echo(click.style(f"! {message}", fg="yellow"), err=True)


def output_json(data: Any) -> None:
    """Output data as JSON."""
    click.echo(json.dumps(data, indent=2, default=str))


def output_table(headers: list[str], rows: list[list[str]]) -> None:
    """Output data as a formatted table."""
    if not rows:
        click.echo("No data to display")
        return

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(col_widths):
                col_widths[i] = max(col_widths[i], len(str(cell)))

    header_row = " | ".join(h.ljust(w) for h, w in zip(headers, col_widths, strict=False))
    click.echo(header_row)
    click.echo("-" * len(header_row))

    for row in rows:
        formatted_row = " | ".join(
            str(cell).ljust(w) for cell, w in zip(row, col_widths, strict=False)
        )
        click.echo(formatted_row.rstrip())


def verbose_echo(ctx: click.Context, message: str) -> None:
    """Echo message only if verbose mode is enabled."""
    if ctx.obj and ctx.obj.get("verbose"):
        click.echo(click.style(f"[VERBOSE] {message}", fg="blue"), err=True)


def quiet_echo(ctx: click.Context, message: str) -> None:
    """Echo message only if not in quiet mode."""
    if not (ctx.obj and ctx.obj.get("quiet")):
        click.echo(message)
