"""
One-shot build command.

Runs a single pass and writes the result to a file or stdout.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from stylecache.build.config import (
    BuildConfig,
    ConfigError,
    OptimizeOptions,
    PluginOptions,
    find_config_file,
    load_config_file,
)
from stylecache.build.errors import StyleCacheError
from stylecache.build.orchestrator import Orchestrator, PassResult
from stylecache.core.timing import format_duration, timing_summary
from stylecache.core.utils import log


# =============================================================================
# Configuration From Arguments
# =============================================================================


def resolve_options(args: argparse.Namespace) -> PluginOptions:
    """Merge the config file (if any) with command-line overrides.

    Raises:
        ConfigError: If the config file is invalid.
    """
    config_path: Optional[Path] = getattr(args, "config", None)
    if config_path is None:
        config_path = find_config_file(Path.cwd())

    options = load_config_file(Path(config_path)) if config_path else PluginOptions()

    updates: dict = {}
    if getattr(args, "base", None):
        updates["base"] = Path(args.base)

    optimize = getattr(args, "optimize", None)
    minify = getattr(args, "minify", None)
    if optimize is False:
        updates["optimize"] = False
    elif minify is not None:
        updates["optimize"] = OptimizeOptions(minify=minify)
    elif optimize is True:
        updates["optimize"] = True

    return options.model_copy(update=updates) if updates else options


def config_from_args(args: argparse.Namespace) -> BuildConfig:
    return BuildConfig(
        input_path=Path(args.input).resolve(),
        output_path=Path(args.output).resolve() if args.output else None,
        options=resolve_options(args),
        debounce=getattr(args, "debounce", None) or BuildConfig.debounce,
        dry_run=getattr(args, "dry_run", False),
        verbose=getattr(args, "verbose", False),
    )


# =============================================================================
# Output
# =============================================================================


def write_output(result: PassResult, config: BuildConfig) -> bool:
    """Write the pass output. Returns False when nothing had to be written.

    Unchanged output files are not rewritten, so watchers downstream of us do
    not see spurious modifications.
    """
    if config.output_path is None:
        if not config.dry_run:
            sys.stdout.write(result.css)
            sys.stdout.flush()
        return True

    path = config.output_path
    if path.exists() and path.read_text(encoding="utf-8") == result.css:
        log.debug(f"{path} unchanged")
        return False

    if config.dry_run:
        log.dry_run(f"Would write {len(result.css)} bytes to {path}")
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(result.css, encoding="utf-8")
    return True


# =============================================================================
# Build Command
# =============================================================================


def cmd_build(args: argparse.Namespace) -> int:
    """Execute the build command."""
    try:
        config = config_from_args(args)
    except ConfigError as e:
        log.error(str(e))
        return 1

    log.verbose = config.verbose
    orchestrator = Orchestrator(config.options)

    try:
        result = orchestrator.process(config.input_path)
    except StyleCacheError as e:
        log.error(str(e))
        return 1

    write_output(result, config)

    # Status goes to stdout only when the CSS does not
    if config.output_path is not None:
        log.success(
            f"Built {config.output_path.name} in {format_duration(result.duration)} "
            f"({result.candidates} candidates, "
            f"{'optimized' if result.optimized else 'unoptimized'})"
        )
        log.debug(timing_summary(result.timings))
    return 0
