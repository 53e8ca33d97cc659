"""Pytest configuration and fixtures for taskgate tests."""
from pathlib import Path

import pytest

from taskgate.config import load_settings


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    # Check if coverage was requested
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)

    if not cov_enabled:
        return

    cwd = Path.cwd()
    coverage_files = list(cwd.glob(".coverage*"))

    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "This suggests tests are not importing/executing package code. "
            "Check that tests import from 'taskgate' (the package) not 'src/taskgate' (filesystem path).",
            returncode=1
        )


@pytest.fixture(autouse=True)
def _quiet_environment(monkeypatch) -> None:
    """No terminal bells and no config file leaking in from the environment."""
    monkeypatch.setenv("TASKGATE_BELL", "0")
    monkeypatch.delenv("TASKGATE_CONFIG", raising=False)


@pytest.fixture
def settings(tmp_path):
    return load_settings(root=tmp_path)
