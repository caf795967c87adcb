"""
Main CLI for stylecache.

Builds a stylesheet once or keeps it up to date in watch mode.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from stylecache import __version__
from stylecache.core.utils import log


# =============================================================================
# Argument Parsing
# =============================================================================


def _add_build_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i", "--input",
        required=True,
        help="Entry point stylesheet",
    )
    parser.add_argument(
        "-o", "--output",
        help="Output file (default: stdout)",
    )
    parser.add_argument(
        "--base",
        help="Directory to scan for candidates (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML config file (default: ./stylecache.yaml if present)",
    )
    parser.add_argument(
        "--optimize",
        dest="optimize",
        action="store_true",
        default=None,
        help="Optimize the output (default: on when STYLECACHE_ENV=production)",
    )
    parser.add_argument(
        "--no-optimize",
        dest="optimize",
        action="store_false",
        help="Emit the raw build output",
    )
    parser.add_argument(
        "--minify",
        dest="minify",
        action="store_true",
        default=None,
        help="Minify optimized output (implies --optimize)",
    )
    parser.add_argument(
        "--no-minify",
        dest="minify",
        action="store_false",
        help="Optimize without minifying",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the pass but do not write the output file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="stylecache",
        description="Incremental stylesheet builds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  build       Run one build pass
  watch       Rebuild whenever inputs change

Examples:
  stylecache build -i src/app.css -o dist/app.css
  stylecache build -i src/app.css --minify > app.min.css
  stylecache watch -i src/app.css -o dist/app.css --base src
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- build ---
    build_parser = subparsers.add_parser(
        "build",
        help="Run one build pass",
        description="Compile the entry point against the candidates found under --base.",
    )
    _add_build_arguments(build_parser)

    # --- watch ---
    watch_parser = subparsers.add_parser(
        "watch",
        help="Rebuild whenever inputs change",
        description="Run an initial build, then rebuild on changes to the entry point, "
        "its imports and scanned sources.",
    )
    _add_build_arguments(watch_parser)
    watch_parser.add_argument(
        "--debounce",
        type=float,
        help="Seconds to wait for more events before rebuilding (default: 0.1)",
    )

    return parser


# =============================================================================
# Command Dispatch
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        log.set_color(False)

    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.command == "build":
            from .commands.build import cmd_build
            return cmd_build(args)

        elif args.command == "watch":
            from .commands.watch import cmd_watch
            return cmd_watch(args)

        else:
            log.error(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        log.warning("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
