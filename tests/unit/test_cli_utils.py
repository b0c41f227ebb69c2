"""Unit tests for CLI utilities."""

import json
from unittest.mock import Mock, patch

import click
import pytest
from click.testing import CliRunner

from devplexer.cli.utils import (
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
from devplexer.config.settings import DevplexerSettings
from devplexer.utils.logging import ConfigError


class TestCliError:
    """Test suite for CliError exception."""

    def test_cli_error_default_exit_code(self):
        """Test CliError with default exit code."""
        error = CliError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.exit_code == 1

    def test_cli_error_partial_exit_code(self):
        error = CliError("Some apps failed", exit_code=EXIT_PARTIAL)
        assert error.exit_code == 3


class TestErrorHandler:
    """Test suite for error_handler decorator."""

    def test_error_handler_success(self):
        """Test error_handler decorator with successful function execution."""

        @error_handler
        def successful_function(value):
            return value * 2

        assert successful_function(5) == 10

    def test_error_handler_cli_error(self):
        """Test error_handler decorator with CliError."""

        @error_handler
        def failing_function():
            raise CliError("Test CLI error", exit_code=3)

        with patch("click.echo") as mock_echo, patch("sys.exit") as mock_exit:
            failing_function()

        mock_echo.assert_called_once()
        assert "Error: Test CLI error" in mock_echo.call_args.args[0]
        assert mock_echo.call_args.kwargs["err"] is True
        mock_exit.assert_called_once_with(3)

    def test_error_handler_devplexer_exception(self):
        """Test domain errors exit with status 1."""

        @error_handler
        def failing_function():
            raise ConfigError("bad topology")

        with patch("click.echo") as mock_echo, patch("sys.exit") as mock_exit:
            failing_function()

        assert "Error: bad topology" in mock_echo.call_args.args[0]
        mock_exit.assert_called_once_with(1)

    def test_error_handler_unexpected_exception(self):
        """Test error_handler decorator with unexpected exception."""

        @error_handler
        def failing_function():
            raise ValueError("Unexpected error")

        with patch("click.echo") as mock_echo, patch("sys.exit") as mock_exit:
            failing_function()

        assert "Unexpected error: Unexpected error" in mock_echo.call_args.args[0]
        mock_exit.assert_called_once_with(1)

    @pytest.mark.parametrize("exception", [click.UsageError("bad usage"), click.Abort()])
    def test_click_exceptions_pass_through(self, exception):
        @error_handler
        def failing_function():
            raise exception

        with pytest.raises(type(exception)):
            failing_function()


class TestContextHelpers:
    """Test helpers reading the click context object."""

    def test_get_settings_from_context(self):
        settings = DevplexerSettings(presenter="none")
        ctx = Mock(obj={"settings": settings})
        assert get_settings(ctx) is settings

    def test_get_settings_loads_when_missing(self):
        ctx = Mock(obj=None)
        with patch("devplexer.cli.utils.load_settings") as load:
            assert get_settings(ctx) is load.return_value

    def test_is_json(self):
        assert is_json(Mock(obj={"json": True})) is True
        assert is_json(Mock(obj={"json": False})) is False
        assert is_json(Mock(obj=None)) is False


class TestOutputHelpers:
    """Test output formatting helpers."""

    def test_success_message(self):
        with patch("click.echo") as mock_echo:
            success_message("Done")
        assert "✓ Done" in mock_echo.call_args.args[0]

    def test_warning_message_goes_to_stderr(self):
        with patch("click.echo") as mock_echo:
            warning_message("Careful")
        assert "! Careful" in mock_echo.call_args.args[0]
        assert mock_echo.call_args.kwargs["err"] is True

    def test_output_json(self):
        with patch("click.echo") as mock_echo:
            output_json({"session_id": "devplexer-demo", "apps": []})
        assert json.loads(mock_echo.call_args.args[0]) == {
            "session_id": "devplexer-demo",
            "apps": [],
        }

    def test_output_table(self):
        @click.command()
        def show():
            output_table(["APP", "STATUS"], [["api", "started"], ["frontend", "FAILED"]])

        result = CliRunner().invoke(show)
        lines = result.output.splitlines()

        assert lines[0].startswith("APP      | STATUS")
        assert set(lines[1]) == {"-"}
        assert lines[2] == "api      | started"
        assert lines[3] == "frontend | FAILED"

    def test_output_table_empty(self):
        with patch("click.echo") as mock_echo:
            output_table(["APP"], [])
        mock_echo.assert_called_once_with("No data to display")

    def test_verbose_echo(self):
        with patch("click.echo") as mock_echo:
            verbose_echo(Mock(obj={"verbose": False}), "hidden")
            mock_echo.assert_not_called()
            verbose_echo(Mock(obj={"verbose": True}), "shown")
        assert "[VERBOSE] shown" in mock_echo.call_args.args[0]

    def test_quiet_echo(self):
        with patch("click.echo") as mock_echo:
            quiet_echo(Mock(obj={"quiet": True}), "hidden")
            mock_echo.assert_not_called()
            quiet_echo(Mock(obj={"quiet": False}), "shown")
        mock_echo.assert_called_once_with("shown")
