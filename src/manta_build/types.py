from __future__ import annotations

from typing import Literal, TypedDict

from typing_extensions import NotRequired

Platform = Literal["windows", "macos", "linux"]
GraphicsApi = Literal["opengl", "d3d11", "none"]
StageName = Literal["objects", "shaders", "assets", "binary"]


class BuildArgs(TypedDict):
    project: str
    config: str
    toolchain: str

    # boolean-ish switches, "1" means true
    codegen: str
    build: str
    run: str
    clean: str
    verbose: str

    # backend selection
    platform: Platform
    graphics_api: GraphicsApi

    # extra arguments forwarded to the produced executable
    run_args: NotRequired[list[str]]


class ProjectFlags(TypedDict):
    compiler_flags: str
    compiler_flags_warnings: str
    linker_flags: str


class Runtime(TypedDict):
    log_level: str
    use_color: bool
