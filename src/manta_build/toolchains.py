# src/manta_build/toolchains.py
"""Compiler/linker command templates per toolchain.

Only the pieces the build description needs are modelled here; flags that
vary per project belong in the project's configs.json.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, replace

from .types import Platform


@dataclass(frozen=True)
class Toolchain:
    name: str

    compiler_name: str
    compiler_output: str  # prefix placed before $out
    compiler_flags: str
    compiler_flags_architecture: str
    compiler_flags_warnings: str
    compiler_flags_includes: str  # "{}" is replaced by the include directory

    linker_name: str
    linker_output: str
    linker_flags: str
    linker_prefix_library: str
    linker_extension_library: str
    linker_extension_exe: str
    linker_extension_obj: str

    deps: str = "gcc"  # ninja dependency style: "gcc" or "msvc"

    def include_flag(self, directory: str) -> str:
        return self.compiler_flags_includes.format(directory)


TOOLCHAINS: dict[str, Toolchain] = {
    "gcc": Toolchain(
        name="gcc",
        compiler_name="g++",
        compiler_output="-o ",
        compiler_flags="-c -MD -MF $out.d -std=c++20",
        compiler_flags_architecture="-m64",
        compiler_flags_warnings="-Wall -Wno-unused-function",
        compiler_flags_includes="-I{}",
        linker_name="g++",
        linker_output="-o ",
        linker_flags="",
        linker_prefix_library="-l",
        linker_extension_library="",
        linker_extension_exe="",
        linker_extension_obj=".o",
    ),
    "clang": Toolchain(
        name="clang",
        compiler_name="clang++",
        compiler_output="-o ",
        compiler_flags="-c -MD -MF $out.d -std=c++20",
        compiler_flags_architecture="",
        compiler_flags_warnings="-Wall -Wno-unused-function",
        compiler_flags_includes="-I{}",
        linker_name="clang++",
        linker_output="-o ",
        linker_flags="",
        linker_prefix_library="-l",
        linker_extension_library="",
        linker_extension_exe="",
        linker_extension_obj=".o",
    ),
    "msvc": Toolchain(
        name="msvc",
        compiler_name="cl",
        compiler_output="/Fo",
        compiler_flags="/nologo /c /std:c++20 /EHsc /showIncludes",
        compiler_flags_architecture="",
        compiler_flags_warnings="/W3",
        compiler_flags_includes="/I{}",
        linker_name="link",
        linker_output="/OUT:",
        linker_flags="/NOLOGO",
        linker_prefix_library="",
        linker_extension_library=".lib",
        linker_extension_exe=".exe",
        linker_extension_obj=".obj",
        deps="msvc",
    ),
}

_DEFAULT_TOOLCHAIN: dict[str, str] = {
    "windows": "msvc",
    "macos": "clang",
    "linux": "gcc",
}


def detect_platform() -> Platform:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def default_toolchain_name(platform: Platform) -> str:
    return _DEFAULT_TOOLCHAIN[platform]


def detect_toolchain(name: str, platform: Platform) -> Toolchain:
    """Return the descriptor for `name`, adjusted for the target platform."""
    toolchain = TOOLCHAINS.get(name)
    if toolchain is None:
        known = ", ".join(sorted(TOOLCHAINS))
        xmsg = f"Unknown toolchain {name!r} (expected one of: {known})"
        raise ValueError(xmsg)

    if platform == "windows" and not toolchain.linker_extension_exe:
        toolchain = replace(toolchain, linker_extension_exe=".exe")
    return toolchain
