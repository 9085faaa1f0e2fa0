import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import config as config_lib
from . import toolchain as toolchain_lib
from .errors import (
    BlurPipeError,
    CleanupError,
    ConfigurationError,
    ProcessLaunchError,
    RenderFailedError,
    ToolchainError,
)
from .logging_utils import setup_logging
from .rendering import RenderQueue, RenderRequest

# sysexits.h
EX_USAGE = 64
EX_UNAVAILABLE = 69
EX_SOFTWARE = 70
EX_CONFIG = 78


def split_inputs(raw: str) -> List[Path]:
    """Split a comma-separated input list, dropping blanks."""
    return [Path(part.strip()) for part in raw.split(",") if part.strip()]


def prompt_inputs() -> List[Path]:
    print("Input file(s), comma separated: ", end="", file=sys.stderr, flush=True)
    return split_inputs(sys.stdin.readline())


def run_render(args: argparse.Namespace) -> int:
    cli_dict = {
        "quality": args.quality,
        "container": args.container,
        "gpu": args.gpu,
        "gpu_type": args.gpu_type,
        "detailed_filename": args.detailed_filename,
    }
    settings = config_lib.resolve_config(cli_dict, config_path=args.config)

    if args.input:
        inputs = split_inputs(args.input)
    elif args.noui:
        print("No input files given (--noui requires INPUT)", file=sys.stderr)
        return EX_USAGE
    else:
        inputs = prompt_inputs()

    if not inputs:
        print("No input files given", file=sys.stderr)
        return EX_USAGE

    missing = [str(path) for path in inputs if not path.is_file()]
    if missing:
        raise ConfigurationError(f"Input file(s) not found: {', '.join(missing)}")

    toolchain = toolchain_lib.resolve_toolchain()
    queue = RenderQueue(toolchain=toolchain)
    try:
        for path in inputs:
            queue.queue_render(RenderRequest.create(path, settings, stdout=args.stdout))
        queue.render_videos()
    except BlurPipeError:
        queue.discard()
        raise
    return 0


def run_check() -> int:
    print("Checking dependencies...")
    toolchain = toolchain_lib.resolve_toolchain()
    status = toolchain_lib.check_toolchain(toolchain)
    for name, found in status.items():
        if found:
            print(f"✅ {name} found.")
        else:
            print(f"❌ {name} NOT found.")
    return 0 if all(status.values()) else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="blurpipe", description="Add motion blur to videos (vspipe | ffmpeg)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Subcommands")

    # RENDER
    render_parser = subparsers.add_parser("render", help="Render one or more videos")
    render_parser.add_argument(
        "input", nargs="?", help="Input file name(s) (comma separated)"
    )
    render_parser.add_argument(
        "--noui", "-n", action="store_true", help="Disable user interface (CLI only)"
    )
    render_parser.add_argument(
        "--stdout", action="store_true", help="Stream the result to stdout (nut container)"
    )
    render_parser.add_argument("--config", "-c", type=Path, help="Extra YAML settings file")
    render_parser.add_argument("--quality", "-q", type=int, help="Override encoder quality")
    render_parser.add_argument("--container", type=str, help="Override output container")
    render_parser.add_argument(
        "--gpu", action=argparse.BooleanOptionalAction, default=None, help="Hardware encoding"
    )
    render_parser.add_argument("--gpu-type", choices=["nvidia", "amd", "intel"], help="GPU vendor")
    render_parser.add_argument(
        "--detailed-filename",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Embed blur parameters in the output name",
    )

    # CHECK
    subparsers.add_parser("check", help="Verify vspipe and ffmpeg are available")

    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    try:
        if args.command == "render":
            return run_render(args)
        elif args.command == "check":
            return run_check()
        else:
            parser.print_help()
            return 0
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EX_CONFIG
    except (ToolchainError, ProcessLaunchError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EX_UNAVAILABLE
    except RenderFailedError:
        print("Processing failed", file=sys.stderr)
        return EX_SOFTWARE
    except CleanupError as e:
        print(f"Cleanup error: {e}", file=sys.stderr)
        return EX_SOFTWARE


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
