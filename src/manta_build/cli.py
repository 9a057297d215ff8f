# src/manta_build/cli.py

import argparse
import platform
import re
import subprocess
import sys
import traceback
from difflib import get_close_matches
from importlib import metadata as importlib_metadata
from pathlib import Path

from .config import determine_log_level
from .constants import (
    DEFAULT_BUILD,
    DEFAULT_CLEAN,
    DEFAULT_CODEGEN,
    DEFAULT_CONFIG,
    DEFAULT_GRAPHICS_API,
    DEFAULT_RUN,
    DEFAULT_VERBOSE,
)
from .meta import DESCRIPTION, PROGRAM_DISPLAY, PROGRAM_SCRIPT, Metadata
from .pipeline import create_context, log_invocation, run_pipeline
from .runtime import current_runtime
from .toolchains import TOOLCHAINS, default_toolchain_name, detect_platform
from .types import BuildArgs
from .utils import safe_log
from .utils_logs import LEVEL_ORDER, is_verbose, log

PLATFORMS = ("windows", "macos", "linux")
GRAPHICS_APIS = ("opengl", "d3d11", "none")

# "-project=game" → ("project", "game")
_SINGLE_DASH_ASSIGN = re.compile(r"^-([A-Za-z][\w-]*)=(.*)$")


# --------------------------------------------------------------------------- #
# CLI setup and helpers
# --------------------------------------------------------------------------- #


class HintingArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        # Build known option strings: ["-v", "--verbose", "--log-level", ...]
        known_opts: list[str] = []
        for action in self._actions:
            known_opts.extend([s for s in action.option_strings if s])

        hint_lines: list[str] = []
        # Argparse message for bad flags is typically
        # "unrecognized arguments: --prjoect ..."
        if "unrecognized arguments:" in message:
            bad = message.split("unrecognized arguments:", 1)[1].strip()
            bad_args = [tok for tok in bad.split() if tok.startswith("-")]
            for arg in bad_args:
                close = get_close_matches(arg, known_opts, n=1, cutoff=0.6)
                if close:
                    hint_lines.append(f"Hint: did you mean {close[0]}?")

        # Print usage + the original error
        self.print_usage(sys.stderr)
        full = f"{self.prog}: error: {message}"
        if hint_lines:
            full += "\n" + "\n".join(hint_lines)
        self.exit(2, full + "\n")


def _setup_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = HintingArgumentParser(prog=PROGRAM_SCRIPT, description=DESCRIPTION)

    # --- Build selection ---
    parser.add_argument("--project", default="", help="Project under projects/.")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Build configuration in configs.json (default: {DEFAULT_CONFIG}).",
    )
    parser.add_argument(
        "--toolchain",
        choices=sorted(TOOLCHAINS),
        default=None,
        help="Compiler toolchain (default: platform default).",
    )
    parser.add_argument(
        "--platform",
        choices=PLATFORMS,
        default=None,
        help="Target platform (default: host platform).",
    )
    parser.add_argument(
        "--gfx",
        dest="graphics_api",
        choices=GRAPHICS_APIS,
        default=DEFAULT_GRAPHICS_API,
        help=f"Graphics API family (default: {DEFAULT_GRAPHICS_API}).",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Workspace root holding source/ and projects/ (default: cwd).",
    )

    # --- Stage switches ("1" means on) ---
    switches = [
        ("--codegen", DEFAULT_CODEGEN, "Run the objects (codegen) phase."),
        ("--build", DEFAULT_BUILD, "Run shaders, assets, binary and compile."),
        ("--run", DEFAULT_RUN, "Run the produced executable afterwards."),
        ("--clean", DEFAULT_CLEAN, "Ignore the build cache and rebuild everything."),
        ("--verbose", DEFAULT_VERBOSE, "Verbose output (same as --log-level debug)."),
    ]
    for flag, default, text in switches:
        parser.add_argument(
            flag, default=default, metavar="0|1", help=f"{text} (default: {default})"
        )

    # --- Color ---
    color = parser.add_mutually_exclusive_group()
    color.add_argument(
        "--no-color",
        dest="use_color",
        action="store_const",
        const=False,
        help="Disable ANSI color output.",
    )
    color.add_argument(
        "--color",
        dest="use_color",
        action="store_const",
        const=True,
        help="Force-enable ANSI color output (overrides auto-detect).",
    )
    color.set_defaults(use_color=None)

    # --- Version and verbosity ---
    parser.add_argument("--version", action="store_true", help="Show version info.")

    log_level = parser.add_mutually_exclusive_group()
    log_level.add_argument(
        "-q",
        "--quiet",
        action="store_const",
        const="warning",
        dest="log_level",
        help="Suppress non-critical output (same as --log-level warning).",
    )
    log_level.add_argument(
        "-v",
        action="store_const",
        const="debug",
        dest="log_level",
        help="Debug output (same as --log-level debug).",
    )
    log_level.add_argument(
        "--log-level",
        choices=LEVEL_ORDER,
        default=None,
        dest="log_level",
        help="Set log verbosity level.",
    )
    return parser


def normalize_argv(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split off program arguments after `--` and expand `-key=value`.

    Returns (driver arguments, arguments forwarded to the executable).
    """
    run_args: list[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, run_args = argv[:split], argv[split + 1 :]

    normalized: list[str] = []
    for token in argv:
        match = _SINGLE_DASH_ASSIGN.match(token)
        if match:
            normalized.extend([f"--{match.group(1)}", match.group(2)])
        else:
            normalized.append(token)
    return normalized, run_args


def to_build_args(args: argparse.Namespace, run_args: list[str]) -> BuildArgs:
    target = args.platform or detect_platform()
    return {
        "project": args.project,
        "config": args.config,
        "toolchain": args.toolchain or default_toolchain_name(target),
        "codegen": args.codegen,
        "build": args.build,
        "run": args.run,
        "clean": args.clean,
        "verbose": args.verbose,
        "platform": target,
        "graphics_api": args.graphics_api,
        "run_args": run_args,
    }


def get_metadata() -> Metadata:
    """Return (version, commit) for this tool.

    - Source checkout → read pyproject.toml + git
    - Installed package → distribution metadata
    """
    version = "unknown"
    commit = "unknown"

    root = Path(__file__).resolve().parents[2]
    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        log("trace", f"trying to read metadata from {pyproject}")
        match = re.search(
            r'(?m)^\s*version\s*=\s*["\']([^"\']+)["\']', pyproject.read_text()
        )
        if match:
            version = match.group(1)
    else:
        try:
            version = importlib_metadata.version(PROGRAM_SCRIPT)
        except importlib_metadata.PackageNotFoundError:
            log("trace", f"no installed distribution named {PROGRAM_SCRIPT}")

    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],  # noqa: S607
            cwd=root,
            capture_output=True,
            text=True,
            check=True,
        )
        commit = result.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        log("trace", "git commit unavailable")

    log("trace", f"got package version {version} with commit {commit}")
    return Metadata(version, commit)


# --------------------------------------------------------------------------- #
# Main entry
# --------------------------------------------------------------------------- #


def main(argv: list[str] | None = None) -> int:
    try:
        raw = list(sys.argv[1:] if argv is None else argv)
        cli_argv, run_args = normalize_argv(raw)

        parser = _setup_parser()
        args = parser.parse_args(cli_argv)

        # --- Early runtime init (use CLI + env + defaults) ---
        current_runtime["log_level"] = determine_log_level(args)
        if args.use_color is not None:
            current_runtime["use_color"] = args.use_color
        log("trace", f"[BOOT] log-level initialized: {current_runtime['log_level']}")

        log(
            "debug",
            f"Runtime: Python {platform.python_version()}"
            f" ({platform.python_implementation()})\n"
            f"    {sys.version.replace(chr(10), ' ')}",
        )

        # --- Version flag ---
        if args.version:
            meta = get_metadata()
            log("info", f"{PROGRAM_DISPLAY} {meta.version} ({meta.commit})")
            return 0

        # --- Python version check ---
        if sys.version_info < (3, 10):
            log("error", f"{PROGRAM_DISPLAY} requires Python 3.10 or newer.")
            return 1

        build_args = to_build_args(args, run_args)
        root = Path(args.root) if args.root else Path.cwd()

        log_invocation([PROGRAM_SCRIPT, *raw])
        ctx = create_context(build_args, root=root)
        log("debug", f"Workspace root: {ctx.paths.root}")
        log(
            "debug",
            f"Target: {build_args['platform']} / {build_args['toolchain']}"
            f" / {build_args['graphics_api']}",
        )

        code = run_pipeline(ctx)
        if code:
            log("trace", f"[RUN] program exit code {code} is not a driver failure")

    except (FileNotFoundError, ValueError, TypeError, RuntimeError, OSError) as e:
        # controlled termination
        try:
            log("error", str(e))
            if is_verbose():
                log("debug", traceback.format_exc().rstrip())
        except Exception:  # noqa: BLE001
            safe_log(f"[FATAL] Logging failed while reporting: {e}")
        return getattr(e, "code", 1)

    except Exception as e:  # noqa: BLE001
        # unexpected internal error
        try:
            log("critical", f"Unexpected internal error: {e}")
            if is_verbose():
                log("debug", traceback.format_exc().rstrip())
        except Exception:  # noqa: BLE001
            safe_log(f"[FATAL] Logging failed while reporting: {e}")

        return getattr(e, "code", 1)

    else:
        return 0
