"""
stylecache.commands - Command implementations for the stylecache CLI.
"""

from stylecache.commands.build import cmd_build, config_from_args, resolve_options, write_output
from stylecache.commands.watch import (
    ChangeFilter,
    CoalescingRunner,
    Debouncer,
    StyleEventHandler,
    WatchSession,
    cmd_watch,
    watch_targets,
)

__all__ = [
    "cmd_build",
    "cmd_watch",
    "config_from_args",
    "resolve_options",
    "write_output",
    "ChangeFilter",
    "CoalescingRunner",
    "Debouncer",
    "StyleEventHandler",
    "WatchSession",
    "watch_targets",
]
