# src/manta_build/graph.py
"""Build graph assembly and build-description rendering.

The graph accumulates, in call order, the translation units, resource
scripts, libraries and include directories gathered during the Compile
phase, then renders them as a ninja file: one compile rule, an optional
resource rule, one link rule, one edge per source and a final link edge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from .backends import Backend
from .constants import BUILD_EXECUTOR, OBJECTS_DIR, ROOT_OFFSET
from .filesystem import directory_iterate, write_text_file
from .process import CommandRunner
from .toolchains import Toolchain
from .types import Platform, ProjectFlags
from .utils import Timer, plural
from .utils_logs import CYAN, log

RESOURCE_EXTENSION_SRC = ".rc"
RESOURCE_EXTENSION_OBJ = ".res"
RESOURCE_COMMAND = "windres --input $in --output $out --output-format=coff"


@dataclass(frozen=True)
class SourceRecord:
    source_path: str
    object_path: str


def object_path_for(relative_path: str | Path, extension_obj: str) -> str:
    """Relocate a source path under the objects root with a new extension."""
    rel = PurePosixPath(Path(relative_path).as_posix())
    return (PurePosixPath(OBJECTS_DIR) / rel).with_suffix(extension_obj).as_posix()


@dataclass
class BuildGraph:
    sources: list[SourceRecord] = field(default_factory=list)
    resources: list[SourceRecord] = field(default_factory=list)
    libraries: list[str] = field(default_factory=list)
    include_directories: list[str] = field(default_factory=list)

    # --- accumulation ---

    def add_source(self, source_path: str, object_path: str) -> SourceRecord:
        record = SourceRecord(source_path, object_path)
        self.sources.append(record)
        return record

    def add_library(self, name: str) -> None:
        self.libraries.append(name)

    def add_include_directory(self, path: str) -> None:
        self.include_directories.append(path)

    def gather_sources(
        self,
        directory: Path | str,
        *,
        recurse: bool,
        extension_src: str,
        extension_obj: str,
        base: Path | str | None = None,
    ) -> int:
        """Add every `extension_src` file under `directory`; return the count.

        Source and object paths keep the layout below `base` (default:
        `directory`), so `base` should be the tree `ROOT_OFFSET` points at.
        """
        records = _gather(directory, recurse, extension_src, extension_obj, base)
        self.sources.extend(records)
        return len(records)

    def gather_resources(
        self,
        directory: Path | str,
        *,
        recurse: bool,
        base: Path | str | None = None,
    ) -> int:
        records = _gather(
            directory, recurse, RESOURCE_EXTENSION_SRC, RESOURCE_EXTENSION_OBJ, base
        )
        self.resources.extend(records)
        return len(records)

    def add_backend(
        self,
        backend: Backend,
        backend_root: Path,
        *,
        extension_obj: str,
        base: Path | str | None = None,
    ) -> int:
        """Gather one backend's sources and libraries; zero sources is fatal."""
        path = backend_root / backend.directory
        count = self.gather_sources(
            path,
            recurse=backend.recurse,
            extension_src=backend.extension,
            extension_obj=extension_obj,
            base=base,
        )
        if count == 0:
            xmsg = f"No backend found for {backend.label} ({path})"
            raise ValueError(xmsg)

        for library in backend.libraries:
            self.add_library(library)
        return count

    # --- rendering ---

    def render(
        self,
        toolchain: Toolchain,
        flags: ProjectFlags,
        *,
        executable: str,
        platform: Platform,
    ) -> str:
        lines: list[str] = []

        # rule compile
        compile_parts = [
            f"{toolchain.compiler_name} $in {toolchain.compiler_output}$out",
            toolchain.compiler_flags,
            toolchain.compiler_flags_architecture,
            flags["compiler_flags"],
            flags["compiler_flags_warnings"],
            toolchain.compiler_flags_warnings,
            *(toolchain.include_flag(d) for d in self.include_directories),
        ]
        lines.append("rule compile")
        if toolchain.deps == "msvc":
            lines.append("  deps = msvc")
        else:
            lines.append("  deps = gcc")
            lines.append("  depfile = $out.d")
        lines.append(f"  command = {_join(compile_parts)}")
        lines.append("")

        # rule rc
        if platform == "windows":
            lines.append("rule rc")
            lines.append(f"  command = {RESOURCE_COMMAND}")
            lines.append("")

        # rule link
        link_parts = [
            f"{toolchain.linker_name} $in {toolchain.linker_output}$out",
            toolchain.linker_flags,
            flags["linker_flags"],
            *(_library_reference(toolchain, lib, platform) for lib in self.libraries),
        ]
        lines.append("rule link")
        lines.append(f"  command = {_join(link_parts)}")
        lines.append("")

        # build edges
        lines.extend(
            f"build {s.object_path}: compile {ROOT_OFFSET}{s.source_path}"
            for s in self.sources
        )
        lines.append("")
        if self.resources:
            lines.extend(
                f"build {r.object_path}: rc {ROOT_OFFSET}{r.source_path}"
                for r in self.resources
            )
            lines.append("")

        objects = [s.object_path for s in self.sources]
        objects += [r.object_path for r in self.resources]
        lines.append(_join([f"build {executable}: link", *objects]))

        return "\n".join(lines) + "\n"


# --------------------------------------------------------------------------- #
# helpers
# --------------------------------------------------------------------------- #


def _gather(
    directory: Path | str,
    recurse: bool,
    extension_src: str,
    extension_obj: str,
    base: Path | str | None,
) -> list[SourceRecord]:
    timer = Timer()
    directory = Path(directory)
    base_dir = Path(base) if base is not None else directory

    records: list[SourceRecord] = []
    for file in directory_iterate(directory, extension_src, recurse=recurse):
        rel = file.relative_to(base_dir)
        object_path = object_path_for(rel, extension_obj)
        records.append(SourceRecord(rel.as_posix(), object_path))

    count = len(records)
    log(
        "debug",
        f"    {count} source{plural(count)} found in: {directory}"
        f" ({timer.elapsed_ms():.3f} ms)",
        color=CYAN,
    )
    return records


def _join(parts: list[str]) -> str:
    return " ".join(p for p in parts if p)


def _library_reference(toolchain: Toolchain, library: str, platform: Platform) -> str:
    if platform == "macos":
        return f"-framework {library}"
    return (
        f"{toolchain.linker_prefix_library}{library}"
        f"{toolchain.linker_extension_library}"
    )


def write_description(path: Path, text: str) -> None:
    write_text_file(path, text)
    log("debug", f"    Wrote ninja to: {path}", color=CYAN)


def run_build_executor(directory: Path, runner: CommandRunner) -> None:
    """Run the build executor against `directory`; non-zero status is fatal."""
    command = [BUILD_EXECUTOR, "-C", str(directory)]
    code = runner(command)
    if code != 0:
        xmsg = f"Compile failed ({BUILD_EXECUTOR} exited with code {code})"
        raise RuntimeError(xmsg)
