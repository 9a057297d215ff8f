# src/manta_build/pipeline.py
"""Stage orchestration.

One `BuildContext` is created per invocation and threaded through every
phase function. Phases run in a fixed order:

    setup → cache → objects → shaders → assets → binary → compile → commit → run

`codegen` gates the objects phase; `build` gates shaders, assets, binary and
compile; `run` gates running the produced program. Inside a phase the
gather and cache steps always run, so the cache baseline is refreshed every
time, while transform and write steps return early when the stage is clean.
Any exception aborts the run before the cache is committed.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from .backends import Backend, resolve_backends
from .cache import StalenessTracker
from .config import find_project_configs, load_project_flags
from .constants import CACHE_FILE, DESCRIPTION_FILE, ENGINE_DIR, PROJECTS_DIR
from .filesystem import ensure_directories, write_binary_file
from .graph import BuildGraph, run_build_executor, write_description
from .payloads import (
    AssetsCollaborator,
    CopiedShaders,
    DefinitionObjects,
    ObjectsCollaborator,
    PackedAssets,
    ShadersCollaborator,
    write_generated,
)
from .process import CommandRunner, run_command
from .toolchains import Toolchain, detect_toolchain
from .types import BuildArgs, StageName
from .utils import Timer, is_truthy_flag
from .utils_logs import CYAN, GREEN, RED, YELLOW, colorize, log

ASSETS_HEADER = "assets.generated.hpp"
ASSETS_SOURCE = "assets.generated.cpp"
ASSETS_ORIGIN = "manta_build.pipeline (assets_write)"
ASSETS_HEADER_PREAMBLE = (
    "#pragma once\n\n#include <core/types.hpp>\n#include <core/debug.hpp>\n\n\n"
)
ASSETS_SOURCE_PREAMBLE = (
    f"#include <{ASSETS_HEADER}>\n#include <manta/fonts.hpp>\n\n\n"
)


# --------------------------------------------------------------------------- #
# context
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class BuildPaths:
    root: Path
    engine: Path
    project: Path
    output: Path
    boot: Path
    build: Path
    generated: Path
    generated_shaders: Path
    runtime: Path
    runtime_licenses: Path
    runtime_distributables: Path
    package: Path
    cache: Path

    @classmethod
    def for_project(cls, root: Path, project: str) -> BuildPaths:
        project_dir = root / PROJECTS_DIR / project
        output = project_dir / "output"
        build = output / "build"
        generated = output / "generated"
        runtime = output / "runtime"
        return cls(
            root=root,
            engine=root / ENGINE_DIR,
            project=project_dir,
            output=output,
            boot=output / "boot",
            build=build,
            generated=generated,
            generated_shaders=generated / "shaders",
            runtime=runtime,
            runtime_licenses=runtime / "licenses",
            runtime_distributables=runtime / "distributables",
            package=output / "package",
            cache=build / CACHE_FILE,
        )

    @property
    def description(self) -> Path:
        return self.runtime / DESCRIPTION_FILE


@dataclass
class Collaborators:
    objects: ObjectsCollaborator = field(default_factory=DefinitionObjects)
    shaders: ShadersCollaborator = field(default_factory=CopiedShaders)
    assets: AssetsCollaborator = field(default_factory=PackedAssets)


@dataclass
class BuildContext:
    args: BuildArgs
    paths: BuildPaths
    toolchain: Toolchain
    backends: list[Backend]
    collaborators: Collaborators = field(default_factory=Collaborators)
    runner: CommandRunner = run_command
    graph: BuildGraph = field(default_factory=BuildGraph)
    tracker: StalenessTracker | None = None

    @property
    def executable_name(self) -> str:
        return f"{self.args['project']}{self.toolchain.linker_extension_exe}"

    @property
    def binary_path(self) -> Path:
        return self.paths.runtime / f"{self.args['project']}.bin"

    @property
    def cache(self) -> StalenessTracker:
        if self.tracker is None:
            xmsg = "Build cache was not loaded before stage checks"
            raise RuntimeError(xmsg)
        return self.tracker


def create_context(
    args: BuildArgs,
    *,
    root: Path,
    runner: CommandRunner | None = None,
    collaborators: Collaborators | None = None,
) -> BuildContext:
    """Resolve paths, toolchain and backends once for this invocation."""
    if not args["project"]:
        xmsg = "No project specified (use --project <name>)"
        raise ValueError(xmsg)

    root = root.resolve()
    return BuildContext(
        args=args,
        paths=BuildPaths.for_project(root, args["project"]),
        toolchain=detect_toolchain(args["toolchain"], args["platform"]),
        backends=resolve_backends(args["platform"], args["graphics_api"]),
        collaborators=collaborators or Collaborators(),
        runner=runner or run_command,
    )


@contextmanager
def _phase(title: str) -> Iterator[None]:
    log("info", f"\n{title}")
    timer = Timer()
    yield
    log("info", f"    Finished ({timer.elapsed_ms():.3f} ms)")


def _log_stage_cache(label: str, dirty: bool) -> None:
    state = colorize("dirty", RED) if dirty else colorize("skip stage", GREEN)
    log("info", f"    {label} Cache... {state}")


def _check(ctx: BuildContext, stage: StageName, counter: int, label: str) -> bool:
    dirty = ctx.cache.check(stage, counter)
    _log_stage_cache(label, dirty)
    return dirty


# --------------------------------------------------------------------------- #
# setup
# --------------------------------------------------------------------------- #


def setup_paths(ctx: BuildContext) -> None:
    paths = ctx.paths
    ensure_directories(
        [
            paths.runtime,
            paths.runtime_licenses,
            paths.runtime_distributables,
            paths.generated,
            paths.generated_shaders,
        ]
    )


def load_cache(ctx: BuildContext) -> None:
    force = is_truthy_flag(ctx.args["clean"])
    ctx.tracker = StalenessTracker.from_file(ctx.paths.cache, force=force)


# --------------------------------------------------------------------------- #
# objects
# --------------------------------------------------------------------------- #


def objects_gather(ctx: BuildContext) -> None:
    log("info", "    Gather Objects...")
    objects = ctx.collaborators.objects
    objects.begin(ctx.paths.generated, exclude=ctx.paths.output)
    objects.gather(ctx.paths.engine / "manta", recurse=True)
    objects.gather(ctx.paths.project / "runtime", recurse=True)


def objects_cache(ctx: BuildContext) -> None:
    _check(ctx, "objects", ctx.collaborators.objects.file_count, "Objects")


def objects_parse(ctx: BuildContext) -> None:
    if not ctx.cache.is_dirty("objects"):
        return
    log("info", "    Parse Objects...")
    ctx.collaborators.objects.parse()


def objects_write(ctx: BuildContext) -> None:
    if not ctx.cache.is_dirty("objects"):
        return
    log("info", "    Write Objects...")
    objects = ctx.collaborators.objects
    objects.resolve()
    objects.validate()
    objects.generate()
    objects.write()


# --------------------------------------------------------------------------- #
# shaders
# --------------------------------------------------------------------------- #


def shaders_gather(ctx: BuildContext) -> None:
    log("info", "    Gather Shaders...")
    shaders = ctx.collaborators.shaders
    shaders.begin(ctx.paths.generated, exclude=ctx.paths.output)
    shaders.gather(ctx.paths.engine, recurse=True)
    shaders.gather(ctx.paths.project, recurse=True)


def shaders_cache(ctx: BuildContext) -> None:
    _check(ctx, "shaders", ctx.collaborators.shaders.file_count, "Shaders")


def shaders_build(ctx: BuildContext) -> None:
    if not ctx.cache.is_dirty("shaders"):
        return
    log("info", "    Build Shaders...")
    ctx.collaborators.shaders.build()


def shaders_write(ctx: BuildContext) -> None:
    if not ctx.cache.is_dirty("shaders"):
        return
    log("info", "    Write Shaders...")
    ctx.collaborators.shaders.write()


# --------------------------------------------------------------------------- #
# assets
# --------------------------------------------------------------------------- #


def assets_gather(ctx: BuildContext) -> None:
    log("info", "    Gather Assets...")
    assets = ctx.collaborators.assets
    assets.begin(ctx.paths.generated, exclude=ctx.paths.output)
    assets.gather(ctx.paths.engine)
    assets.gather(ctx.paths.project)


def assets_cache(ctx: BuildContext) -> None:
    _check(ctx, "assets", ctx.collaborators.assets.file_count, "Assets")


def assets_build(ctx: BuildContext) -> None:
    if not ctx.cache.is_dirty("assets"):
        return
    log("info", "    Build Assets...")
    ctx.collaborators.assets.build()


def assets_write(ctx: BuildContext) -> None:
    if not ctx.cache.is_dirty("assets"):
        return
    log("info", "    Write Assets...")
    assets = ctx.collaborators.assets
    write_generated(
        ctx.paths.generated / ASSETS_HEADER,
        assets.header,
        origin=ASSETS_ORIGIN,
        preamble=ASSETS_HEADER_PREAMBLE,
    )
    write_generated(
        ctx.paths.generated / ASSETS_SOURCE,
        assets.source,
        origin=ASSETS_ORIGIN,
        preamble=ASSETS_SOURCE_PREAMBLE,
    )


# --------------------------------------------------------------------------- #
# binary
# --------------------------------------------------------------------------- #


def binary_cache(ctx: BuildContext) -> None:
    has_content = len(ctx.collaborators.assets.binary) > 0
    _log_stage_cache("Binary", ctx.cache.mark("binary", has_content))


def binary_write(ctx: BuildContext) -> None:
    if not ctx.cache.is_dirty("binary"):
        return
    log("info", "    Writing Binary")
    timer = Timer()
    write_binary_file(ctx.binary_path, ctx.collaborators.assets.binary)
    log(
        "debug",
        f"    Write {ctx.binary_path} ({timer.elapsed_ms():.3f} ms)",
        color=CYAN,
    )


# --------------------------------------------------------------------------- #
# compile
# --------------------------------------------------------------------------- #


def compile_project(ctx: BuildContext) -> None:
    graph = ctx.graph
    paths = ctx.paths
    extension_obj = ctx.toolchain.linker_extension_obj

    graph.add_include_directory("../../runtime")

    log("info", "    Gather Project Sources...")
    graph.gather_sources(
        paths.project / "runtime",
        recurse=True,
        extension_src=".cpp",
        extension_obj=extension_obj,
        base=paths.root,
    )
    if ctx.args["platform"] == "windows":
        graph.gather_resources(paths.project, recurse=True, base=paths.root)


def compile_engine(ctx: BuildContext) -> None:
    graph = ctx.graph
    paths = ctx.paths
    extension_obj = ctx.toolchain.linker_extension_obj

    graph.add_include_directory("../generated")
    graph.add_include_directory("../../../../source")

    log("info", "    Gather Engine Sources...")
    groups: list[tuple[Path, bool]] = [
        (paths.generated, False),
        (paths.engine, False),
        (paths.engine / "vendor", True),
        (paths.engine / "core", True),
        (paths.engine / "manta", False),
    ]
    for directory, recurse in groups:
        graph.gather_sources(
            directory,
            recurse=recurse,
            extension_src=".cpp",
            extension_obj=extension_obj,
            base=paths.root,
        )

    backend_root = paths.engine / "manta" / "backend"
    for backend in ctx.backends:
        graph.add_backend(
            backend, backend_root, extension_obj=extension_obj, base=paths.root
        )


def compile_write_description(ctx: BuildContext) -> None:
    log("info", "    Write Ninja")
    args = ctx.args
    configs = find_project_configs(ctx.paths.root, args["project"])
    flags = load_project_flags(configs, args["config"], args["toolchain"])

    text = ctx.graph.render(
        ctx.toolchain,
        flags,
        executable=ctx.executable_name,
        platform=args["platform"],
    )
    write_description(ctx.paths.description, text)


def compile_run_executor(ctx: BuildContext) -> None:
    log("info", "    Run Ninja")
    run_build_executor(ctx.paths.runtime, ctx.runner)


# --------------------------------------------------------------------------- #
# run
# --------------------------------------------------------------------------- #


def executable_run(ctx: BuildContext) -> int:
    """Run the produced program and report (not raise on) its exit code."""
    command = [
        str(ctx.paths.runtime / ctx.executable_name),
        *ctx.args.get("run_args", []),
    ]
    code = ctx.runner(command)
    log(
        "info",
        f"\n{ctx.executable_name} terminated with code {code}\n",
        color=RED if code else None,
    )
    return code


# --------------------------------------------------------------------------- #
# entry
# --------------------------------------------------------------------------- #


def run_pipeline(ctx: BuildContext) -> int | None:
    """Run every enabled phase; return the program's exit code if it ran."""
    total = Timer()
    args = ctx.args
    codegen = is_truthy_flag(args["codegen"])
    build = is_truthy_flag(args["build"])
    run = is_truthy_flag(args["run"])

    setup_paths(ctx)
    load_cache(ctx)

    if codegen:
        with _phase("Build Objects"):
            objects_gather(ctx)
            objects_cache(ctx)
            objects_parse(ctx)
            objects_write(ctx)

    if build:
        with _phase("Build Graphics"):
            shaders_gather(ctx)
            shaders_cache(ctx)
            shaders_build(ctx)
            shaders_write(ctx)

        with _phase("Build Assets"):
            assets_gather(ctx)
            assets_cache(ctx)
            assets_build(ctx)
            assets_write(ctx)

        with _phase("Build Binary"):
            binary_cache(ctx)
            binary_write(ctx)

        log("info", "\nCompile Code")
        timer = Timer()
        compile_project(ctx)
        compile_engine(ctx)
        compile_write_description(ctx)
        compile_run_executor(ctx)
        log(
            "info",
            f"\n    Compile finished: {timer.elapsed_s():.3f} s"
            f" ({timer.elapsed_ms():.3f} ms)",
        )

    log(
        "info",
        colorize("\nBuild Finished!", GREEN),
        f"({total.elapsed_s():.3f} s)",
    )
    ctx.cache.commit(ctx.paths.cache)

    if run:
        return executable_run(ctx)
    return None


def log_invocation(argv: list[str]) -> None:
    log("info", colorize("\n> " + " ".join(argv), YELLOW))
