# src/manta_build/config.py


import argparse
import os
from pathlib import Path

from .constants import (
    DEFAULT_ENV_LOG_LEVEL,
    DEFAULT_LOG_LEVEL,
    PROJECT_CONFIGS_FILE,
    PROJECTS_DIR,
)
from .json_query import JsonDocument
from .meta import PROGRAM_ENV
from .types import ProjectFlags
from .utils import is_truthy_flag
from .utils_logs import log


def determine_log_level(args: argparse.Namespace) -> str:
    """Resolve log level from CLI → --verbose → env → default."""
    if getattr(args, "log_level", None):
        return str(args.log_level)

    if is_truthy_flag(getattr(args, "verbose", None)):
        return "debug"

    env_log_level = os.getenv(f"{PROGRAM_ENV}_LOG_LEVEL") or os.getenv(
        DEFAULT_ENV_LOG_LEVEL
    )
    if env_log_level:
        return env_log_level

    return DEFAULT_LOG_LEVEL


def find_project_configs(root: Path, project: str) -> Path:
    """Return projects/<project>/configs.json; a missing file is fatal."""
    path = root / PROJECTS_DIR / project / PROJECT_CONFIGS_FILE
    if not path.is_file():
        xmsg = f"Failed to load configs file: {path}"
        raise FileNotFoundError(xmsg)
    return path


def load_project_flags(path: Path, config: str, toolchain: str) -> ProjectFlags:
    """Read `<config>.compile.<toolchain>` flags from a project configs file.

    Every field is optional and defaults to an empty string; a selection that
    does not exist simply yields no extra flags.
    """
    document = JsonDocument.from_path(path)
    scope = document.object(config).object("compile").object(toolchain)
    if scope.empty:
        log(
            "debug",
            f"No compile flags for {config}.compile.{toolchain} in {path.name}",
        )

    return {
        "compiler_flags": scope.get_string("compilerFlags", ""),
        "compiler_flags_warnings": scope.get_string("compilerFlagsWarnings", ""),
        "linker_flags": scope.get_string("linkerFlags", ""),
    }
