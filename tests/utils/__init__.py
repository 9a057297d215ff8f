# tests/utils/__init__.py

from .fake_runner import FakeRunner
from .trace import TRACE, make_trace
from .workspace import DEFAULT_CONFIGS, make_workspace, write

__all__ = [
    "DEFAULT_CONFIGS",
    "TRACE",
    "FakeRunner",
    "make_trace",
    "make_workspace",
    "write",
]
