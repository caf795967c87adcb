"""
Rebuild cache: one entry per input identity.

Each entry owns its compiler handle, the last built CSS, the last optimized
CSS and the modification times of the files that force a handle rebuild.
Entries are independent of each other; work on one entry must hold
``entry.lock`` for the whole pass.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from stylecache.build.clock import DependencyClock
from stylecache.build.compiler import CompilerFactory, CompilerHandle, clear_module_cache
from stylecache.build.stylesheet import compile_stylesheet

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


class RebuildStrategy(Enum):
    """How much work a pass has to redo."""

    FULL = "full"                # new compiler handle, dependencies rediscovered
    INCREMENTAL = "incremental"  # existing handle, fresh scan and build only


class PassState(Enum):
    """Where an entry is within a pass."""

    IDLE = "idle"
    RESOLVING = "resolving"
    FULL = "full"
    INCREMENTAL = "incremental"
    SCANNING = "scanning"
    BUILDING = "building"
    OPTIMIZING = "optimizing"
    EMITTING = "emitting"


@dataclass
class CacheEntry:
    """Cached state for one input identity."""

    identity: str
    clock: DependencyClock = field(default_factory=DependencyClock)
    compiler: Optional[CompilerHandle] = None
    css: Optional[str] = None            # last built, un-optimized output
    optimized_css: Optional[str] = None  # optimized form of `css`, when computed
    full_rebuild_paths: list[str] = field(default_factory=list)

    state: PassState = PassState.IDLE
    passes: int = 0
    full_rebuilds: int = 0
    compilers_created: int = 0
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


# =============================================================================
# Rebuild Cache
# =============================================================================


class RebuildCache:
    """Arena of cache entries keyed by input identity."""

    def __init__(self, compiler_factory: CompilerFactory = compile_stylesheet):
        self.compiler_factory = compiler_factory
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def entry(self, identity: str) -> CacheEntry:
        """Return the entry for ``identity``, creating an empty one if absent."""
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None:
                entry = CacheEntry(identity=identity)
                self._entries[identity] = entry
            return entry

    def get(self, identity: str) -> Optional[CacheEntry]:
        return self._entries.get(identity)

    def evict(self, identity: str) -> bool:
        """Drop one entry. Returns False if it did not exist."""
        with self._lock:
            entry = self._entries.pop(identity, None)
        if entry is None:
            return False
        with entry.lock:
            clear_module_cache(entry.full_rebuild_paths)
            entry.compiler = None
        return True

    def clear(self) -> None:
        with self._lock:
            identities = list(self._entries)
        for identity in identities:
            self.evict(identity)

    # -------------------------------------------------------------------------
    # Handle lifecycle
    # -------------------------------------------------------------------------

    def create_compiler(
        self,
        entry: CacheEntry,
        load_css: Callable[[], str],
        base: str,
    ) -> CompilerHandle:
        """Replace the entry's handle with a freshly compiled one.

        The old handle is dropped before compiling, so a failure leaves the
        entry without a handle and the next pass tries again.

        Raises:
            ResolutionError: If ``load_css`` cannot read the entry point.
            CompileError: If the stylesheet does not compile.
        """
        clear_module_cache(entry.full_rebuild_paths)
        entry.compiler = None
        entry.full_rebuild_paths = []

        handle = CompilerHandle.create(self.compiler_factory, load_css(), base)

        entry.compiler = handle
        entry.full_rebuild_paths = list(handle.dependencies)
        entry.compilers_created += 1
        # Files read during compilation are current as of now
        entry.clock.prime(entry.full_rebuild_paths)
        return handle

    def decide(
        self,
        entry: CacheEntry,
        input_file: Optional[str],
        load_css: Callable[[], str],
        base: str,
        upstream: Iterable[str] = (),
    ) -> RebuildStrategy:
        """Pick the strategy for this pass and recreate the handle if needed.

        Caller must hold ``entry.lock``.
        """
        created = False
        if entry.compiler is None:
            self.create_compiler(entry, load_css, base)
            created = True

        strategy = RebuildStrategy.INCREMENTAL

        tracked = list(dict.fromkeys([*entry.full_rebuild_paths, *map(str, upstream)]))
        if input_file is not None and input_file not in tracked:
            tracked.append(input_file)

        for path in tracked:
            changed = entry.clock.observe(path)
            if changed is None:
                # Deleted or mid-save dependencies are tolerated; a missing
                # entry point goes through a full rebuild so the read fails loudly
                if path == input_file:
                    strategy = RebuildStrategy.FULL
                continue
            if changed:
                logger.debug(f"{entry.identity}: {path} changed")
                strategy = RebuildStrategy.FULL

        if created:
            return RebuildStrategy.FULL

        if strategy is RebuildStrategy.FULL:
            self.create_compiler(entry, load_css, base)
        return strategy
