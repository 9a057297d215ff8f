# src/manta_build/__init__.py

"""Manta Build: the engine build driver.

Full developer API
==================
This package re-exports all non-private symbols from its submodules,
making it suitable for programmatic use, custom integrations, or plugins.
Anything prefixed with "_" is considered internal and may change.

Highlights:
    - main()              → CLI entrypoint
    - run_pipeline()      → Execute every enabled build phase
    - StalenessTracker    → Per-stage dirty decisions backed by build.cache
    - BuildGraph          → Gather sources and render build.ninja
    - JsonDocument        → Navigate JSON text in place
"""

from .backends import (
    BACKEND_REGISTRY,
    SUBSYSTEMS,
    Backend,
    lookup_backends,
    resolve_backends,
)
from .cache import CacheBuffer, StageDirtyFlags, StalenessTracker
from .cli import get_metadata, main
from .config import determine_log_level, find_project_configs, load_project_flags
from .constants import (
    DEFAULT_CONFIG,
    DEFAULT_ENV_LOG_LEVEL,
    DEFAULT_GRAPHICS_API,
    DEFAULT_LOG_LEVEL,
)
from .graph import BuildGraph, SourceRecord, object_path_for, run_build_executor
from .json_query import JsonDocument, JsonView, strip_whitespace
from .meta import (
    PROGRAM_DISPLAY,
    PROGRAM_ENV,
    PROGRAM_PACKAGE,
    PROGRAM_SCRIPT,
    Metadata,
)
from .payloads import (
    AssetsCollaborator,
    CopiedShaders,
    DefinitionObjects,
    ObjectsCollaborator,
    PackedAssets,
    ShadersCollaborator,
)
from .pipeline import (
    BuildContext,
    BuildPaths,
    Collaborators,
    create_context,
    run_pipeline,
)
from .process import CommandRunner, run_command
from .runtime import current_runtime
from .toolchains import TOOLCHAINS, Toolchain, detect_platform, detect_toolchain
from .types import BuildArgs, GraphicsApi, Platform, ProjectFlags, Runtime
from .utils import should_use_color
from .utils_logs import (
    LEVEL_ORDER,
    RESET,
    colorize,
    log,
)


__all__ = [  # noqa: RUF022
    # --- CLI / Pipeline ---
    "get_metadata",  # version info
    "main",
    "BuildContext",
    "BuildPaths",
    "Collaborators",
    "create_context",
    "run_pipeline",
    #
    # --- Core ---
    "CacheBuffer",
    "StageDirtyFlags",
    "StalenessTracker",
    "BuildGraph",
    "SourceRecord",
    "object_path_for",
    "run_build_executor",
    "JsonDocument",
    "JsonView",
    "strip_whitespace",
    #
    # --- Collaborators ---
    "AssetsCollaborator",
    "CopiedShaders",
    "DefinitionObjects",
    "ObjectsCollaborator",
    "PackedAssets",
    "ShadersCollaborator",
    "CommandRunner",
    "run_command",
    #
    # --- Backends / Toolchains / Config ---
    "BACKEND_REGISTRY",
    "SUBSYSTEMS",
    "Backend",
    "lookup_backends",
    "resolve_backends",
    "TOOLCHAINS",
    "Toolchain",
    "detect_platform",
    "detect_toolchain",
    "determine_log_level",
    "find_project_configs",
    "load_project_flags",
    #
    # --- Constants / Metadata / Runtime ---
    "DEFAULT_CONFIG",
    "DEFAULT_ENV_LOG_LEVEL",
    "DEFAULT_GRAPHICS_API",
    "DEFAULT_LOG_LEVEL",
    "Metadata",
    "PROGRAM_DISPLAY",
    "PROGRAM_ENV",
    "PROGRAM_PACKAGE",
    "PROGRAM_SCRIPT",
    "current_runtime",
    #
    # --- utils ---
    "LEVEL_ORDER",
    "RESET",
    "colorize",
    "log",
    "should_use_color",
    #
    # --- Types ---
    "BuildArgs",
    "GraphicsApi",
    "Platform",
    "ProjectFlags",
    "Runtime",
]
