# src/manta_build/backends.py
"""Backend registry: which source directory implements each engine subsystem.

Entries are keyed by (subsystem, platform, graphics API family). Non-graphics
subsystems do not depend on the API family and are registered under `ANY`.
A key maps to one or more backends; graphics families that need a
platform-specific context layer (wgl/nsgl/glx) contribute a second entry,
validated independently.
"""

from __future__ import annotations

from dataclasses import dataclass

from .types import GraphicsApi, Platform

ANY = "*"

SUBSYSTEMS: tuple[str, ...] = (
    "audio",
    "filesystem",
    "network",
    "gfx",
    "thread",
    "timer",
    "window",
)


@dataclass(frozen=True)
class Backend:
    subsystem: str
    directory: str  # relative to source/manta/backend
    recurse: bool = True
    extension: str = ".cpp"
    libraries: tuple[str, ...] = ()
    name: str | None = None  # display name for sub-backends

    @property
    def label(self) -> str:
        return self.name or f"'{self.subsystem}'"


BACKEND_REGISTRY: dict[tuple[str, str, str], tuple[Backend, ...]] = {
    # audio
    ("audio", "windows", ANY): (
        Backend("audio", "audio/wasapi", libraries=("Ole32",)),
    ),
    ("audio", "macos", ANY): (
        Backend("audio", "audio/coreaudio", libraries=("AudioToolbox",)),
    ),
    ("audio", "linux", ANY): (Backend("audio", "audio/alsa", libraries=("asound",)),),
    # filesystem
    ("filesystem", "windows", ANY): (Backend("filesystem", "filesystem/windows"),),
    ("filesystem", "macos", ANY): (Backend("filesystem", "filesystem/posix"),),
    ("filesystem", "linux", ANY): (Backend("filesystem", "filesystem/posix"),),
    # network
    ("network", "windows", ANY): (
        Backend("network", "network/winsock", libraries=("ws2_32",)),
    ),
    ("network", "macos", ANY): (Backend("network", "network/posix"),),
    ("network", "linux", ANY): (Backend("network", "network/posix"),),
    # gfx
    ("gfx", "windows", "opengl"): (
        Backend("gfx", "gfx/opengl", recurse=False),
        Backend(
            "gfx",
            "gfx/opengl/wgl",
            recurse=False,
            libraries=("opengl32", "gdi32"),
            name="opengl 'wgl'",
        ),
    ),
    ("gfx", "macos", "opengl"): (
        Backend("gfx", "gfx/opengl", recurse=False),
        Backend(
            "gfx",
            "gfx/opengl/nsgl",
            recurse=False,
            extension=".mm",
            libraries=("OpenGL",),
            name="opengl 'nsgl'",
        ),
    ),
    ("gfx", "linux", "opengl"): (
        Backend("gfx", "gfx/opengl", recurse=False),
        Backend(
            "gfx",
            "gfx/opengl/glx",
            recurse=False,
            libraries=("GL",),
            name="opengl 'glx'",
        ),
    ),
    ("gfx", "windows", "d3d11"): (
        Backend(
            "gfx",
            "gfx/d3d11",
            recurse=False,
            libraries=("d3d11", "d3dcompiler", "dxgi"),
        ),
    ),
    ("gfx", "windows", "none"): (Backend("gfx", "gfx/none", recurse=False),),
    ("gfx", "macos", "none"): (Backend("gfx", "gfx/none", recurse=False),),
    ("gfx", "linux", "none"): (Backend("gfx", "gfx/none", recurse=False),),
    # thread
    ("thread", "windows", ANY): (Backend("thread", "thread/windows"),),
    ("thread", "macos", ANY): (Backend("thread", "thread/pthread"),),
    ("thread", "linux", ANY): (Backend("thread", "thread/pthread"),),
    # timer
    ("timer", "windows", ANY): (
        Backend("timer", "time/windows", libraries=("winmm",)),
    ),
    ("timer", "macos", ANY): (Backend("timer", "time/posix"),),
    ("timer", "linux", ANY): (Backend("timer", "time/posix"),),
    # window
    ("window", "windows", ANY): (
        Backend("window", "window/windows", libraries=("user32", "Shell32")),
    ),
    ("window", "macos", ANY): (
        Backend("window", "window/cocoa", extension=".mm", libraries=("Cocoa",)),
    ),
    ("window", "linux", ANY): (Backend("window", "window/x11", libraries=("X11",)),),
}


def lookup_backends(
    subsystem: str,
    platform: Platform,
    graphics_api: GraphicsApi,
    registry: dict[tuple[str, str, str], tuple[Backend, ...]] | None = None,
) -> tuple[Backend, ...]:
    registry = BACKEND_REGISTRY if registry is None else registry
    found = registry.get((subsystem, platform, graphics_api))
    if found is None:
        found = registry.get((subsystem, platform, ANY))
    if found is None:
        xmsg = (
            f"No backend registered for '{subsystem}'"
            f" (platform={platform}, gfx={graphics_api})"
        )
        raise ValueError(xmsg)
    return found


def resolve_backends(
    platform: Platform,
    graphics_api: GraphicsApi,
    registry: dict[tuple[str, str, str], tuple[Backend, ...]] | None = None,
) -> list[Backend]:
    """Select the backends for every subsystem, in compile order."""
    resolved: list[Backend] = []
    for subsystem in SUBSYSTEMS:
        resolved.extend(lookup_backends(subsystem, platform, graphics_api, registry))
    return resolved
