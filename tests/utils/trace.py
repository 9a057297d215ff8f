# tests/utils/trace.py

import builtins
import importlib
import os
from collections.abc import Callable

TRACE_ENABLED = os.environ.get("TRACE", "").lower() in {"1", "true", "yes"}


def make_trace(icon: str = "🧪") -> Callable[..., None]:
    """Return a TRACE printer whose lines are tagged with `icon`."""

    def trace(label: str, *args: object) -> None:
        if not TRACE_ENABLED:
            return

        # Avoid using the possibly monkeypatched "time" from sys.modules
        _real_time = importlib.import_module("time")  # guaranteed pristine copy

        ts = _real_time.monotonic()
        # builtins.print more reliable than sys.stdout.write + sys.stdout.flush
        builtins.print(f"[TRACE {ts:.6f}] {icon} {label}:", *args, flush=True)

    return trace


TRACE = make_trace()
