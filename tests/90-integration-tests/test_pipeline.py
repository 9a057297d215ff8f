# tests/90-integration-tests/test_pipeline.py
"""End-to-end tests for manta_build.pipeline against a fake workspace.

The build executor and the produced program never actually run: a
`FakeRunner` records their command lines and returns chosen exit codes.
"""

import struct
from pathlib import Path
from typing import Any

import pytest

import manta_build.pipeline as mod_pipeline
from manta_build.types import BuildArgs
from tests.utils import FakeRunner, make_workspace, write


def make_args(**overrides: Any) -> BuildArgs:
    args: BuildArgs = {
        "project": "game",
        "config": "debug",
        "toolchain": "gcc",
        "codegen": "1",
        "build": "1",
        "run": "0",
        "clean": "0",
        "verbose": "0",
        "platform": "linux",
        "graphics_api": "opengl",
        "run_args": [],
    }
    args.update(overrides)  # type: ignore[typeddict-item]
    return args


def run_once(
    root: Path, runner: FakeRunner | None = None, **overrides: Any
) -> tuple[mod_pipeline.BuildContext, int | None]:
    ctx = mod_pipeline.create_context(
        make_args(**overrides), root=root, runner=runner or FakeRunner()
    )
    code = mod_pipeline.run_pipeline(ctx)
    return ctx, code


def read_cache(ctx: mod_pipeline.BuildContext) -> list[int]:
    data = ctx.paths.cache.read_bytes()
    return [v for (v,) in struct.iter_unpack("<Q", data)]


# ---------------------------------------------------------------------------
# Paths / context
# ---------------------------------------------------------------------------


def test_build_paths_layout(tmp_path: Path) -> None:
    # --- execute ---
    paths = mod_pipeline.BuildPaths.for_project(tmp_path, "game")

    # --- verify ---
    output = tmp_path / "projects" / "game" / "output"
    assert paths.engine == tmp_path / "source"
    assert paths.generated_shaders == output / "generated" / "shaders"
    assert paths.runtime_distributables == output / "runtime" / "distributables"
    assert paths.cache == output / "build" / "build.cache"
    assert paths.description == output / "runtime" / "build.ninja"


def test_create_context_requires_project(tmp_path: Path) -> None:
    # --- execute and verify ---
    with pytest.raises(ValueError, match="No project specified"):
        mod_pipeline.create_context(make_args(project=""), root=tmp_path)


def test_create_context_unknown_toolchain(tmp_path: Path) -> None:
    # --- execute and verify ---
    with pytest.raises(ValueError, match="Unknown toolchain"):
        mod_pipeline.create_context(make_args(toolchain="tcc"), root=tmp_path)


def test_stage_checks_require_loaded_cache(tmp_path: Path) -> None:
    # --- setup ---
    ctx = mod_pipeline.create_context(make_args(), root=tmp_path)

    # --- execute and verify ---
    with pytest.raises(RuntimeError, match="Build cache was not loaded"):
        mod_pipeline.objects_cache(ctx)


# ---------------------------------------------------------------------------
# First run / incremental runs
# ---------------------------------------------------------------------------


def test_first_run_builds_everything(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    runner = FakeRunner()

    # --- execute ---
    ctx, code = run_once(root, runner)

    # --- verify ---
    assert code is None
    out = capsys.readouterr().out
    assert "Build Cache... dirty" in out
    assert "Objects Cache... dirty" in out
    assert "Shaders Cache... dirty" in out
    assert "Assets Cache... dirty" in out
    assert "Build Finished!" in out

    generated = ctx.paths.generated
    for name in (
        "objects.generated.hpp",
        "objects.generated.cpp",
        "shaders.generated.hpp",
        "shaders.generated.cpp",
        "assets.generated.hpp",
        "assets.generated.cpp",
    ):
        assert (generated / name).exists(), name
    assert (ctx.paths.generated_shaders / "shader_0.shader").exists()
    assert ctx.binary_path.read_bytes() == b"sprite-0"
    assert ctx.paths.runtime_licenses.is_dir()

    # objects (2), shaders (1), assets (1)
    assert read_cache(ctx) == [2, 1, 1]
    assert runner.commands == [["ninja", "-C", str(ctx.paths.runtime)]]


def test_second_identical_run_skips_transforms(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    ctx, _ = run_once(root)
    first_cache = ctx.paths.cache.read_bytes()
    (ctx.paths.generated / "objects.generated.hpp").unlink()
    (ctx.paths.generated / "assets.generated.hpp").unlink()
    ctx.binary_path.unlink()
    capsys.readouterr()

    # --- execute ---
    runner = FakeRunner()
    ctx, _ = run_once(root, runner)

    # --- verify ---
    out = capsys.readouterr().out
    assert "Build Cache... clean" in out
    assert "Objects Cache... skip stage" in out
    assert "Shaders Cache... skip stage" in out
    assert "Assets Cache... skip stage" in out
    assert "Binary Cache... skip stage" in out

    assert not (ctx.paths.generated / "objects.generated.hpp").exists()
    assert not (ctx.paths.generated / "assets.generated.hpp").exists()
    assert not ctx.binary_path.exists()

    # baseline refreshed with identical counters; compile still ran
    assert ctx.paths.cache.read_bytes() == first_cache
    assert len(runner.commands) == 1


def test_new_shader_forces_assets_rebuild(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    ctx, _ = run_once(root)
    (ctx.paths.generated / "assets.generated.hpp").unlink()
    (ctx.paths.generated / "objects.generated.hpp").unlink()
    ctx.binary_path.unlink()
    write(root / "source" / "shaders" / "extra.shader", "// extra")

    # --- execute ---
    ctx, _ = run_once(root)

    # --- verify ---
    tracker = ctx.cache
    assert tracker.is_dirty("objects") is False
    assert tracker.is_dirty("shaders") is True
    assert tracker.is_dirty("assets") is True  # asset count did not change
    assert (ctx.paths.generated / "assets.generated.hpp").exists()
    assert not (ctx.paths.generated / "objects.generated.hpp").exists()
    assert ctx.binary_path.exists()
    assert read_cache(ctx) == [2, 2, 1]


def test_new_asset_does_not_force_shaders(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    run_once(root)
    write(root / "projects" / "game" / "assets" / "extra.sprite", "x")

    # --- execute ---
    ctx, _ = run_once(root)

    # --- verify ---
    assert ctx.cache.is_dirty("shaders") is False
    assert ctx.cache.is_dirty("assets") is True
    assert ctx.binary_path.read_bytes() == b"xsprite-0"


def test_clean_request_rebuilds_everything(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    run_once(root)

    # --- execute ---
    ctx, _ = run_once(root, clean="1")

    # --- verify ---
    assert ctx.cache.previous is not None
    assert ctx.cache.flags.global_dirty is True
    for stage in ("objects", "shaders", "assets", "binary"):
        assert ctx.cache.is_dirty(stage) is True  # type: ignore[arg-type]


def test_codegen_off_skips_objects_slot(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)

    # --- execute ---
    ctx, _ = run_once(root, codegen="0")

    # --- verify ---
    assert not (ctx.paths.generated / "objects.generated.hpp").exists()
    assert read_cache(ctx) == [1, 1]


def test_build_off_only_runs_codegen(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    runner = FakeRunner()

    # --- execute ---
    ctx, _ = run_once(root, runner, build="0")

    # --- verify ---
    assert (ctx.paths.generated / "objects.generated.hpp").exists()
    assert not (ctx.paths.generated / "shaders.generated.hpp").exists()
    assert not ctx.paths.description.exists()
    assert runner.commands == []
    assert read_cache(ctx) == [2]


# ---------------------------------------------------------------------------
# Build description
# ---------------------------------------------------------------------------


def test_description_source_group_order_linux(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)

    # --- execute ---
    ctx, _ = run_once(root)

    # --- verify ---
    text = ctx.paths.description.read_text()
    edges = [
        line.split(": compile ")[1]
        for line in text.splitlines()
        if ": compile " in line
    ]
    prefix = "../../../../"
    assert edges[:12] == [
        prefix + "projects/game/runtime/main.cpp",
        prefix + "projects/game/runtime/scenes/title.cpp",
        prefix + "projects/game/output/generated/assets.generated.cpp",
        prefix + "projects/game/output/generated/objects.generated.cpp",
        prefix + "projects/game/output/generated/shaders.generated.cpp",
        prefix + "source/manta.cpp",
        prefix + "source/vendor/stb/stb.cpp",
        prefix + "source/core/math/vector.cpp",
        prefix + "source/core/memory.cpp",
        prefix + "source/manta/engine.cpp",
        prefix + "source/manta/backend/audio/alsa/audio_alsa.cpp",
        prefix + "source/manta/backend/filesystem/posix/filesystem_posix.cpp",
    ]
    assert prefix + "source/manta/nested/skipped.cpp" not in edges
    assert edges[-1] == prefix + "source/manta/backend/window/x11/window_x11.cpp"

    assert "-I../../runtime -I../generated -I../../../../source" in text
    assert "-g -O0 -Wextra" in text  # project flags from configs.json
    assert "-g -lasound -lGL -lX11" in text
    assert "rule rc" not in text
    assert text.splitlines()[-1].startswith(
        "build game: link objects/projects/game/runtime/main.o "
    )


def test_description_windows_msvc(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    runner = FakeRunner()

    # --- execute ---
    ctx, _ = run_once(
        root, runner, platform="windows", toolchain="msvc", graphics_api="d3d11"
    )

    # --- verify ---
    text = runner.descriptions[0]
    assert "  deps = msvc" in text
    assert "rule rc" in text
    assert (
        "build objects/projects/game/resources.res: rc"
        " ../../../../projects/game/resources.rc"
    ) in text
    assert "Ole32.lib ws2_32.lib d3d11.lib d3dcompiler.lib dxgi.lib" in text
    assert "/Zi" in text and "/DEBUG" in text
    assert text.splitlines()[-1].startswith("build game.exe: link ")
    assert text.splitlines()[-1].endswith(" objects/projects/game/resources.res")
    assert ".obj" in text and ".o " not in text


def test_description_macos_frameworks(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)

    # --- execute ---
    ctx, _ = run_once(root, platform="macos", toolchain="clang")

    # --- verify ---
    text = ctx.paths.description.read_text()
    assert "-framework AudioToolbox -framework OpenGL -framework Cocoa" in text
    assert "gfx/opengl/nsgl/gfx_opengl_nsgl.mm" in text


def test_missing_backend_is_fatal_and_cache_untouched(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    timer_dir = root / "source" / "manta" / "backend" / "time" / "posix"
    for file in timer_dir.iterdir():
        file.unlink()
    ctx = mod_pipeline.create_context(make_args(), root=root, runner=FakeRunner())

    # --- execute and verify ---
    with pytest.raises(ValueError, match="No backend found for 'timer'") as e:
        mod_pipeline.run_pipeline(ctx)
    assert str(timer_dir) in str(e.value)
    assert not ctx.paths.cache.exists()


def test_missing_configs_file_is_fatal(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    (root / "projects" / "game" / "configs.json").unlink()

    # --- execute and verify ---
    with pytest.raises(FileNotFoundError, match="Failed to load configs file"):
        run_once(root)


# ---------------------------------------------------------------------------
# Executor and run phase
# ---------------------------------------------------------------------------


def test_compile_failure_leaves_previous_cache(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    ctx, _ = run_once(root)
    previous = ctx.paths.cache.read_bytes()
    write(root / "source" / "shaders" / "extra.shader")

    # --- execute and verify ---
    with pytest.raises(RuntimeError, match="Compile failed"):
        run_once(root, FakeRunner({"ninja": 2}))
    assert ctx.paths.cache.read_bytes() == previous


def test_run_phase_reports_exit_code(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    runner = FakeRunner({"game": 3})

    # --- execute ---
    ctx, code = run_once(root, runner, run="1", run_args=["--level", "2"])

    # --- verify ---
    assert code == 3
    assert runner.commands[-1] == [
        str(ctx.paths.runtime / "game"),
        "--level",
        "2",
    ]
    assert "game terminated with code 3" in capsys.readouterr().out
    assert ctx.paths.cache.exists()  # committed before running


def test_run_phase_skipped_by_default(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    runner = FakeRunner()

    # --- execute ---
    run_once(root, runner)

    # --- verify ---
    assert runner.executables == ["ninja"]


# ---------------------------------------------------------------------------
# Injected collaborators
# ---------------------------------------------------------------------------


class CountingShaders:
    """Shader collaborator stub reporting a fixed count."""

    def __init__(self, count: int) -> None:
        self.count = count
        self.built = 0

    @property
    def file_count(self) -> int:
        return self.count

    def begin(self, generated_dir: Path, *, exclude: Path | None = None) -> None:
        pass

    def gather(self, directory: Path, *, recurse: bool) -> int:
        return self.count

    def build(self) -> None:
        self.built += 1

    def write(self) -> None:
        pass


def test_injected_collaborator_drives_dirty_state(tmp_path: Path) -> None:
    # --- setup ---
    root = make_workspace(tmp_path)
    shaders = CountingShaders(5)
    collaborators = mod_pipeline.Collaborators(shaders=shaders)

    # --- execute ---
    for _ in range(2):
        ctx = mod_pipeline.create_context(
            make_args(), root=root, runner=FakeRunner(), collaborators=collaborators
        )
        mod_pipeline.run_pipeline(ctx)

    # --- verify ---
    assert shaders.built == 1  # only the first (dirty) run transformed
    assert read_cache(ctx)[1] == 5
