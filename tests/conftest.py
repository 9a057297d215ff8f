# tests/conftest.py
"""
Shared test setup for project.

Every test starts from the same runtime: log level `info`, no ANSI color,
regardless of the LOG_LEVEL / MANTA_BUILD_LOG_LEVEL / NO_COLOR environment
of the developer running pytest.
"""

import pytest
from pytest import Config

import manta_build.meta as mod_meta
import manta_build.runtime as mod_runtime
from tests.utils import make_trace

TRACE = make_trace("⚡️")


def pytest_report_header(config: Config) -> str:
    return f"Package: {mod_meta.PROGRAM_PACKAGE}"


@pytest.fixture(autouse=True)
def _reset_runtime(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(f"{mod_meta.PROGRAM_ENV}_LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.setitem(mod_runtime.current_runtime, "log_level", "info")
    monkeypatch.setitem(mod_runtime.current_runtime, "use_color", False)
    TRACE("runtime reset", dict(mod_runtime.current_runtime))
