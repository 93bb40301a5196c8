"""Basic tests for svgbinder."""

from typer.testing import CliRunner

from svgbinder import __version__
from svgbinder.cli import app


def test_version() -> None:
    """Test that version is defined and follows semantic versioning."""
    import re

    assert __version__ is not None
    assert isinstance(__version__, str)
    version_pattern = r"^\d+\.\d+\.\d+$"
    assert re.match(
        version_pattern, __version__
    ), f"Version '{__version__}' doesn't follow semantic versioning"


def test_cli_version_command() -> None:
    """Test that version command works."""
    runner = CliRunner()
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "svgbinder version" in result.output
    assert __version__ in result.output


def test_cli_version_flag() -> None:
    """Test that --version flag works."""
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"svgbinder version {__version__}" in result.output
