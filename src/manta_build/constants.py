# src/manta_build/constants.py
"""
Central constants used across the project.
"""

# --- env keys ---
DEFAULT_ENV_LOG_LEVEL: str = "LOG_LEVEL"

# --- cli defaults ---
DEFAULT_LOG_LEVEL: str = "info"
DEFAULT_CONFIG: str = "debug"
DEFAULT_CODEGEN: str = "1"
DEFAULT_BUILD: str = "1"
DEFAULT_RUN: str = "0"
DEFAULT_CLEAN: str = "0"
DEFAULT_VERBOSE: str = "0"
DEFAULT_GRAPHICS_API: str = "opengl"

# --- workspace layout ---
ENGINE_DIR: str = "source"
PROJECTS_DIR: str = "projects"
PROJECT_CONFIGS_FILE: str = "configs.json"
OBJECTS_DIR: str = "objects"

# The description file lives in projects/<project>/output/runtime,
# four levels below the workspace root.
ROOT_OFFSET: str = "../../../../"

# --- build cache / executor ---
CACHE_FILE: str = "build.cache"
CACHE_COUNTER_FORMAT: str = "<Q"  # one unsigned 64-bit counter per slot
DESCRIPTION_FILE: str = "build.ninja"
BUILD_EXECUTOR: str = "ninja"
