# src/manta_build/process.py
"""External command execution.

Everything that spawns a process (the build executor, the produced program)
goes through a `CommandRunner`, so tests can substitute a fake that records
the command and returns a chosen exit code.
"""

import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from .utils_logs import MAGENTA, log

CommandRunner = Callable[[Sequence[str]], int]


def run_command(command: Sequence[str], cwd: Path | None = None) -> int:
    """Run `command` with inherited stdio and return its exit status."""
    log("debug", "    > " + " ".join(command), color=MAGENTA)
    try:
        completed = subprocess.run(list(command), cwd=cwd, check=False)  # noqa: S603
    except FileNotFoundError as e:
        xmsg = f"Command not found: {command[0]}"
        raise FileNotFoundError(xmsg) from e
    return completed.returncode
