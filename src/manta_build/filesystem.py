# src/manta_build/filesystem.py


import shutil
from collections.abc import Iterable
from pathlib import Path

from .utils_logs import log


def directory_iterate(
    directory: Path | str,
    extension: str,
    *,
    recurse: bool,
) -> list[Path]:
    """Return files under `directory` whose suffix is `extension`, sorted.

    A missing directory yields no files; callers decide whether that is fatal.
    """
    directory = Path(directory)
    if not directory.is_dir():
        log("trace", f"[ITERATE] directory does not exist: {directory}")
        return []

    candidates = directory.rglob("*") if recurse else directory.iterdir()
    matches = [p for p in candidates if p.is_file() and p.name.endswith(extension)]
    return sorted(matches, key=lambda p: p.as_posix())


def ensure_directories(paths: Iterable[Path]) -> None:
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def write_text_file(path: Path | str, text: str) -> None:
    """Write `text` to `path`, creating parents; failures are fatal."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8", newline="\n")
    except OSError as e:
        xmsg = f"Failed to write '{path}': {e.strerror or e}"
        raise OSError(xmsg) from e


def write_binary_file(path: Path | str, data: bytes) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        xmsg = f"Failed to write binary ({path}): {e.strerror or e}"
        raise OSError(xmsg) from e


def copy_file(
    src: Path | str,
    dest: Path | str,
    *,
    src_root: Path | str,
) -> None:
    src = Path(src)
    dest = Path(dest)
    src_root = Path(src_root)

    try:
        rel_src = src.relative_to(src_root)
    except ValueError:
        rel_src = src
    log("trace", f"📄 {rel_src} → {dest}")

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest)
    except OSError as e:
        xmsg = f"Failed to copy '{src}' → '{dest}': {e.strerror or e}"
        raise OSError(xmsg) from e
