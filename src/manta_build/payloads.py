# src/manta_build/payloads.py
"""Payload collaborators for the objects, shaders and assets stages.

The orchestrator only needs the protocols below: gather inputs, report a
file count for the staleness tracker, and (when dirty) transform and write.
The bundled implementations are intentionally small: object definitions are
JSON files, shaders are copied through, and assets are packed byte-for-byte
into the runtime binary with a generated offset table.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .filesystem import copy_file, directory_iterate, write_text_file
from .json_query import JsonDocument
from .utils import Timer
from .utils_logs import CYAN, log

GENERATED_BANNER = (
    "/*\n"
    " * File generated by manta-build--do not edit!\n"
    " * Refer to: {origin}\n"
    " */\n"
)


def frame_generated(body: str, *, origin: str, preamble: str = "") -> str:
    """Prefix collaborator output with the do-not-edit banner and preamble."""
    return GENERATED_BANNER.format(origin=origin) + preamble + body


def write_generated(path: Path, body: str, *, origin: str, preamble: str = "") -> None:
    timer = Timer()
    write_text_file(path, frame_generated(body, origin=origin, preamble=preamble))
    log("debug", f"    Write {path} ({timer.elapsed_ms():.3f} ms)", color=CYAN)


def _identifier(name: str) -> str:
    ident = re.sub(r"\W", "_", name)
    return f"_{ident}" if ident[:1].isdigit() else ident


def _reject_duplicates(what: str, named: Iterable[tuple[str, Path]]) -> None:
    """Generated enums and copy targets are keyed by name; repeats are fatal."""
    seen: dict[str, Path] = {}
    for name, path in named:
        if name in seen:
            xmsg = f"{what} '{name}' defined twice ({seen[name]}, {path})"
            raise ValueError(xmsg)
        seen[name] = path


def _collect(
    directory: Path,
    extensions: Iterable[str],
    *,
    recurse: bool,
    exclude: Path | None,
) -> list[Path]:
    found: list[Path] = []
    for extension in extensions:
        found.extend(directory_iterate(directory, extension, recurse=recurse))
    if exclude is not None:
        found = [p for p in found if not p.is_relative_to(exclude)]
    return sorted(found, key=lambda p: p.as_posix())


# --------------------------------------------------------------------------- #
# protocols
# --------------------------------------------------------------------------- #


class ObjectsCollaborator(Protocol):
    @property
    def file_count(self) -> int: ...

    def begin(self, generated_dir: Path, *, exclude: Path | None = None) -> None: ...
    def gather(self, directory: Path, *, recurse: bool) -> int: ...
    def parse(self) -> None: ...
    def resolve(self) -> None: ...
    def validate(self) -> None: ...
    def generate(self) -> None: ...
    def write(self) -> None: ...


class ShadersCollaborator(Protocol):
    @property
    def file_count(self) -> int: ...

    def begin(self, generated_dir: Path, *, exclude: Path | None = None) -> None: ...
    def gather(self, directory: Path, *, recurse: bool) -> int: ...
    def build(self) -> None: ...
    def write(self) -> None: ...


class AssetsCollaborator(Protocol):
    @property
    def file_count(self) -> int: ...

    header: str
    source: str
    binary: bytes

    def begin(self, generated_dir: Path, *, exclude: Path | None = None) -> None: ...
    def gather(self, directory: Path) -> int: ...
    def build(self) -> None: ...


# --------------------------------------------------------------------------- #
# objects
# --------------------------------------------------------------------------- #

OBJECT_EXTENSION = ".object"


@dataclass
class ObjectDefinition:
    name: str
    parent: str
    path: Path
    depth: int = 0


@dataclass
class DefinitionObjects:
    """Object definitions: one JSON file per object, `{"name", "parent"}`."""

    files: list[Path] = field(default_factory=list)
    definitions: list[ObjectDefinition] = field(default_factory=list)
    header: str = ""
    source: str = ""
    generated_dir: Path = Path()
    exclude: Path | None = None

    @property
    def file_count(self) -> int:
        return len(self.files)

    def begin(self, generated_dir: Path, *, exclude: Path | None = None) -> None:
        self.files.clear()
        self.definitions.clear()
        self.generated_dir = generated_dir
        self.exclude = exclude

    def gather(self, directory: Path, *, recurse: bool) -> int:
        files = _collect(
            directory, [OBJECT_EXTENSION], recurse=recurse, exclude=self.exclude
        )
        self.files.extend(files)
        log("debug", f"    {len(files)} object file(s) in {directory}", color=CYAN)
        return len(files)

    def parse(self) -> None:
        for path in self.files:
            doc = JsonDocument.from_path(path)
            name = doc.get_string("name", path.name.removesuffix(OBJECT_EXTENSION))
            parent = doc.get_string("parent", "")
            self.definitions.append(ObjectDefinition(name, parent, path))

    def validate(self) -> None:
        seen: dict[str, Path] = {}
        for definition in self.definitions:
            if definition.name in seen:
                xmsg = (
                    f"Object '{definition.name}' defined twice"
                    f" ({seen[definition.name]}, {definition.path})"
                )
                raise ValueError(xmsg)
            seen[definition.name] = definition.path

    def resolve(self) -> None:
        """Compute each object's inheritance depth; unknown parents and
        cycles are fatal."""
        by_name = {d.name: d for d in self.definitions}
        for definition in self.definitions:
            chain = [definition.name]
            parent = definition.parent
            while parent:
                if parent not in by_name:
                    xmsg = (
                        f"Object '{definition.name}' inherits unknown"
                        f" parent '{parent}' ({definition.path})"
                    )
                    raise ValueError(xmsg)
                if parent in chain:
                    cycle = " → ".join([*chain, parent])
                    xmsg = f"Object inheritance cycle: {cycle}"
                    raise ValueError(xmsg)
                chain.append(parent)
                parent = by_name[parent].parent
            definition.depth = len(chain) - 1

    def generate(self) -> None:
        ordered = sorted(self.definitions, key=lambda d: (d.depth, d.name))
        names = [_identifier(d.name) for d in ordered]

        self.header = "namespace Object\n{\n\tenum : u16\n\t{\n"
        self.header += "".join(f"\t\t{name},\n" for name in names)
        self.header += f"\t\tCOUNT = {len(names)},\n\t}};\n}}\n"

        parents = [
            _identifier(d.parent) if d.parent else "COUNT" for d in ordered
        ]
        self.source = f"const u16 OBJECT_PARENTS[{max(len(names), 1)}] =\n{{\n"
        self.source += "".join(f"\tObject::{p},\n" for p in parents) or "\t0,\n"
        self.source += "};\n"

    def write(self) -> None:
        origin = "manta_build.payloads (DefinitionObjects)"
        write_generated(
            self.generated_dir / "objects.generated.hpp",
            self.header,
            origin=origin,
            preamble="#pragma once\n\n#include <core/types.hpp>\n\n\n",
        )
        write_generated(
            self.generated_dir / "objects.generated.cpp",
            self.source,
            origin=origin,
            preamble="#include <objects.generated.hpp>\n\n\n",
        )


# --------------------------------------------------------------------------- #
# shaders
# --------------------------------------------------------------------------- #

SHADER_EXTENSION = ".shader"


@dataclass
class CopiedShaders:
    """Shader sources copied into generated/shaders plus a name table."""

    files: list[tuple[Path, Path]] = field(default_factory=list)  # (root, file)
    generated_dir: Path = Path()
    exclude: Path | None = None

    @property
    def file_count(self) -> int:
        return len(self.files)

    def begin(self, generated_dir: Path, *, exclude: Path | None = None) -> None:
        self.files.clear()
        self.generated_dir = generated_dir
        self.exclude = exclude

    def gather(self, directory: Path, *, recurse: bool) -> int:
        files = _collect(
            directory, [SHADER_EXTENSION], recurse=recurse, exclude=self.exclude
        )
        self.files.extend((directory, f) for f in files)
        return len(files)

    def build(self) -> None:
        named = [
            (_identifier(p.name.removesuffix(SHADER_EXTENSION)), p)
            for _, p in self.files
        ]
        _reject_duplicates("Shader", named)
        for root, path in self.files:
            copy_file(path, self.generated_dir / "shaders" / path.name, src_root=root)

    def write(self) -> None:
        names = [
            _identifier(p.name.removesuffix(SHADER_EXTENSION)) for _, p in self.files
        ]
        header = "namespace Shader\n{\n\tenum : u32\n\t{\n"
        header += "".join(f"\t\t{name},\n" for name in names)
        header += f"\t\tCOUNT = {len(names)},\n\t}};\n}}\n"

        source = f"const char *SHADER_FILES[{max(len(names), 1)}] =\n{{\n"
        entries = "".join(f'\t"shaders/{p.name}",\n' for _, p in self.files)
        source += entries or "\tnullptr,\n"
        source += "};\n"

        origin = "manta_build.payloads (CopiedShaders)"
        write_generated(
            self.generated_dir / "shaders.generated.hpp",
            header,
            origin=origin,
            preamble="#pragma once\n\n#include <core/types.hpp>\n\n\n",
        )
        write_generated(
            self.generated_dir / "shaders.generated.cpp",
            source,
            origin=origin,
            preamble="#include <shaders.generated.hpp>\n\n\n",
        )


# --------------------------------------------------------------------------- #
# assets
# --------------------------------------------------------------------------- #

ASSET_KINDS: dict[str, tuple[str, ...]] = {
    "sprites": (".sprite",),
    "materials": (".material",),
    "fonts": (".ttf", ".otf"),
    "sounds": (".wav",),
    "songs": (".ogg",),
    "meshes": (".obj",),
}


@dataclass
class PackedAssets:
    """Packs every gathered asset into the runtime binary, in gather order."""

    files: dict[str, list[Path]] = field(
        default_factory=lambda: {kind: [] for kind in ASSET_KINDS}
    )
    header: str = ""
    source: str = ""
    binary: bytes = b""
    exclude: Path | None = None

    @property
    def file_count(self) -> int:
        return sum(len(paths) for paths in self.files.values())

    def begin(self, generated_dir: Path, *, exclude: Path | None = None) -> None:  # noqa: ARG002
        for paths in self.files.values():
            paths.clear()
        self.header = ""
        self.source = ""
        self.binary = b""
        self.exclude = exclude

    def gather(self, directory: Path) -> int:
        count = 0
        for kind, extensions in ASSET_KINDS.items():
            found = _collect(directory, extensions, recurse=True, exclude=self.exclude)
            self.files[kind].extend(found)
            count += len(found)
        return count

    def build(self) -> None:
        blob = bytearray()
        header = "struct BinaryAsset\n{\n\tusize offset;\n\tusize size;\n};\n\n"
        source = ""

        for kind, paths in self.files.items():
            log("trace", f"[ASSETS] {kind}: {len(paths)}")
            if not paths:
                continue
            _reject_duplicates(
                f"Asset ({kind})", ((_identifier(p.stem), p) for p in paths)
            )

            entries: list[str] = []
            names: list[str] = []
            for path in paths:
                data = path.read_bytes()
                entries.append(f"\t{{ {len(blob)}, {len(data)} }},")
                names.append(_identifier(path.stem))
                blob += data

            namespace = kind.capitalize()
            header += f"namespace {namespace}\n{{\n\tenum : u32\n\t{{\n"
            header += "".join(f"\t\t{name},\n" for name in names)
            header += f"\t\tCOUNT = {len(names)},\n\t}};\n}}\n\n"
            header += f"extern const BinaryAsset {kind.upper()}[{len(names)}];\n\n"

            source += f"const BinaryAsset {kind.upper()}[{len(names)}] =\n{{\n"
            source += "\n".join(entries) + "\n};\n\n"

        self.header = header
        self.source = source
        self.binary = bytes(blob)
