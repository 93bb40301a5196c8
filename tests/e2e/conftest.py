"""Pytest configuration and fixtures for E2E tests."""

import os
import subprocess
import sys
import time
from collections.abc import Callable
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    """Create an empty input directory for each test."""
    directory = tmp_path / "input"
    directory.mkdir()
    return directory


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for each test."""
    output_dir = tmp_path / "output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


def run_cli(args: list[str], cwd: Path | None = None, timeout: int = 300) -> subprocess.CompletedProcess:
    """
    Run the svgbinder CLI in a child process.

    The command defaults to ``python -m svgbinder``; set ``SVGBINDER_CLI`` to
    test an installed entry point instead. Standard output and standard error
    are kept apart so tests can check where messages go.
    """
    cli_binary = os.getenv("SVGBINDER_CLI")
    cmd = [cli_binary, *args] if cli_binary else [sys.executable, "-m", "svgbinder", *args]

    env = os.environ.copy()
    src = str(PROJECT_ROOT / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src, env.get("PYTHONPATH")) if p)
    env.setdefault("COLUMNS", "200")
    env.setdefault("PYTHONIOENCODING", "utf-8")

    print(f"Running command: {' '.join(cmd)}")
    start_time = time.perf_counter()
    result = subprocess.run(
        cmd,
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        encoding="utf-8",
        timeout=timeout,
        check=False,
    )
    duration = time.perf_counter() - start_time
    print(f"Command completed in {duration:.2f}s with exit code {result.returncode}")
    if result.stdout:
        print(f"Stdout:\n{result.stdout}")
    if result.stderr:
        print(f"Stderr:\n{result.stderr}")
    return result


@pytest.fixture
def cli_runner() -> Callable[..., subprocess.CompletedProcess]:
    """Fixture that provides the run_cli function for tests."""
    return run_cli
