# src/manta_build/cache.py
"""Stage staleness tracking.

The cache file is a flat sequence of unsigned 64-bit little-endian counters
with no header and no field names. Slots are positional, in the order the
stages query them during one run:

    0. objects file count   (only when codegen runs)
    1. shaders file count
    2. assets file count

Every `check()` reads the next slot of the previous run and appends the
current counter, so the N-th read and the N-th write always describe the
same stage.
"""

from __future__ import annotations

import os
import struct
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .constants import CACHE_COUNTER_FORMAT
from .types import StageName
from .utils_logs import GREEN, RED, colorize, log

_COUNTER = struct.Struct(CACHE_COUNTER_FORMAT)


class CacheBuffer:
    """Append-only sequence of fixed-width counters with a read cursor."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytearray(data)
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._data) // _COUNTER.size

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    @classmethod
    def load(cls, path: Path | str) -> CacheBuffer | None:
        """Load a cache file; None if it is missing, unreadable or truncated."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError:
            log("trace", f"[CACHE] no readable cache at {path}")
            return None

        if len(data) % _COUNTER.size != 0:
            log("trace", f"[CACHE] truncated cache at {path} ({len(data)} bytes)")
            return None
        return cls(data)

    def read(self) -> int | None:
        """Return the counter at the cursor and advance; None past the end."""
        offset = self._cursor * _COUNTER.size
        if offset + _COUNTER.size > len(self._data):
            return None
        self._cursor += 1
        return int(_COUNTER.unpack_from(self._data, offset)[0])

    def write(self, value: int) -> None:
        self._data += _COUNTER.pack(value)

    def values(self) -> list[int]:
        return [v for (v,) in _COUNTER.iter_unpack(bytes(self._data))]

    def save(self, path: Path | str) -> None:
        """Write the counters to a temp file, then rename it over `path`.

        The previous cache stays intact if any step fails.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
        except OSError as e:
            xmsg = f"Failed to write build cache ({path}): {e.strerror or e}"
            raise OSError(xmsg) from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(bytes(self._data))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            xmsg = f"Failed to write build cache ({path}): {e.strerror or e}"
            raise OSError(xmsg) from e


@dataclass
class StageDirtyFlags:
    global_dirty: bool = False
    objects: bool = False
    shaders: bool = False
    assets: bool = False
    binary: bool = False

    def is_dirty(self, stage: StageName) -> bool:
        return self.global_dirty or bool(getattr(self, stage))

    def mark(self, stage: StageName, dirty: bool = True) -> bool:
        """OR `dirty` (and the global flag) into `stage`; return the result."""
        value = self.is_dirty(stage) or dirty
        setattr(self, stage, value)
        return value


class StalenessTracker:
    """Compare this run's stage counters with the previous run's, in order."""

    def __init__(
        self,
        previous: CacheBuffer | None,
        *,
        force: bool = False,
    ) -> None:
        self.previous = previous
        self.current = CacheBuffer()
        self.forced = force
        self.flags = StageDirtyFlags(global_dirty=force or previous is None)

    @classmethod
    def from_file(cls, path: Path | str, *, force: bool = False) -> StalenessTracker:
        tracker = cls(CacheBuffer.load(path), force=force)
        tracker.log_summary()
        return tracker

    def log_summary(self) -> None:
        if not self.flags.global_dirty:
            state = colorize("clean", GREEN)
        else:
            state = colorize("dirty (force)" if self.forced else "dirty", RED)
        log("info", f"Build Cache... {state}")

    def check(self, stage: StageName, counter: int) -> bool:
        """Record `counter` for `stage` and return whether the stage is dirty."""
        previous = self.previous.read() if self.previous is not None else None
        mismatch = previous is None or previous != counter
        self.current.write(counter)

        dirty = self.flags.mark(stage, mismatch)
        log(
            "trace",
            f"[CACHE] {stage}: previous={previous} current={counter} dirty={dirty}",
        )

        # Shader output feeds the asset stage; a shader rebuild
        # always forces the asset rebuild too. Only this pair is linked.
        if stage == "shaders" and dirty:
            self.flags.assets = True

        return dirty

    def mark(self, stage: StageName, dirty: bool) -> bool:
        """Flag a stage without consuming a cache slot."""
        return self.flags.mark(stage, dirty)

    def is_dirty(self, stage: StageName) -> bool:
        return self.flags.is_dirty(stage)

    def commit(self, path: Path | str) -> None:
        """Persist the counters gathered during this run."""
        log("trace", f"[CACHE] commit {self.current.values()} → {path}")
        self.current.save(path)

