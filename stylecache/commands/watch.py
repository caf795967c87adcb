"""
Watch mode for stylecache.

Runs an initial pass, then re-runs passes whenever the entry point, one of
its structural dependencies or a scanned source changes. Bursts of events
are debounced, and triggers that arrive while a pass is running collapse
into a single trailing pass.
"""

from __future__ import annotations

import argparse
import os
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from stylecache.build.config import BuildConfig, ConfigError
from stylecache.build.errors import StyleCacheError
from stylecache.build.orchestrator import Orchestrator, PassResult
from stylecache.commands.build import config_from_args, write_output
from stylecache.core.timing import format_duration
from stylecache.core.utils import log


# =============================================================================
# Change Filtering
# =============================================================================

# Editor swap and backup files
TEMP_SUFFIXES = (".swp", ".swx", ".tmp", "~")


class ChangeFilter:
    """Decides which file system events should trigger a pass."""

    def __init__(self, output_path: Optional[Path] = None):
        self.output_path = output_path.resolve() if output_path else None

    def should_trigger(self, path: Path) -> bool:
        if self.output_path is not None and path.resolve() == self.output_path:
            return False
        if path.name.startswith(".") or path.name.endswith(TEMP_SUFFIXES):
            return False
        if any(part in ("__pycache__", "node_modules", ".git") for part in path.parts):
            return False
        return True


# =============================================================================
# Debouncer
# =============================================================================


class Debouncer:
    """Batches rapid file change events into a single callback.

    Collects events for `delay` seconds after the last event, then calls
    `callback` with every path seen in the batch.
    """

    def __init__(self, delay: float, callback: Callable[[list[Path]], None]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._pending_paths: list[Path] = []

    def trigger(self, path: Path) -> None:
        """Register a change event. Resets the debounce timer."""
        with self._lock:
            if path not in self._pending_paths:
                self._pending_paths.append(path)

            if self._timer is not None:
                self._timer.cancel()

            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            if not self._pending_paths:
                return
            paths = list(self._pending_paths)
            self._pending_paths.clear()
            self._timer = None

        self.callback(paths)

    def cancel(self) -> None:
        """Cancel any pending debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_paths.clear()


# =============================================================================
# Coalescing Runner
# =============================================================================


class CoalescingRunner:
    """Serializes passes and folds overlapping requests into one re-run.

    ``request()`` runs the pass in the calling thread when idle. If a pass is
    already running, the request only marks a trailing pass, which the
    running thread executes once it finishes, however many requests came in.
    """

    def __init__(self, run: Callable[[], object]):
        self._run = run
        self._lock = threading.Lock()
        self._running = False
        self._pending = False
        self.runs = 0
        self.coalesced = 0

    @property
    def running(self) -> bool:
        return self._running

    def request(self) -> bool:
        """Returns True if this call executed the pass(es) itself."""
        with self._lock:
            if self._running:
                self._pending = True
                self.coalesced += 1
                return False
            self._running = True

        try:
            while True:
                self.runs += 1
                self._run()
                with self._lock:
                    if not self._pending:
                        self._running = False
                        return True
                    self._pending = False
        except BaseException:
            with self._lock:
                self._running = False
                self._pending = False
            raise


# =============================================================================
# File System Event Handler
# =============================================================================


class StyleEventHandler(FileSystemEventHandler):
    """Forwards relevant file system events to the debouncer."""

    def __init__(self, change_filter: ChangeFilter, debouncer: Debouncer):
        super().__init__()
        self.change_filter = change_filter
        self.debouncer = debouncer

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        # Atomic saves write a temp file and move it over the original
        self._handle(getattr(event, "dest_path", event.src_path))

    def _handle(self, src_path) -> None:
        path = Path(os.fsdecode(src_path))
        if self.change_filter.should_trigger(path):
            log.dim(f"Change detected: {path.name}")
            self.debouncer.trigger(path)


# =============================================================================
# Watch Session
# =============================================================================


def watch_targets(input_path: Path, result: Optional[PassResult]) -> dict[str, bool]:
    """Directories to observe, mapped to whether they are watched recursively.

    Glob bases are watched recursively; directories of individual file
    dependencies outside every glob base are watched flat.
    """
    targets: dict[str, bool] = {}
    if result is not None:
        for root in result.manifest.watch_roots():
            targets[os.path.abspath(root)] = True

    recursive_roots = [root for root, recursive in targets.items() if recursive]

    def covered(directory: str) -> bool:
        return any(
            directory == root or directory.startswith(root.rstrip(os.sep) + os.sep)
            for root in recursive_roots
        )

    files = [str(input_path)]
    if result is not None:
        files.extend(result.manifest.files)
    for file in files:
        directory = os.path.dirname(os.path.abspath(file))
        if not covered(directory):
            targets.setdefault(directory, False)
    return targets


class WatchSession:
    """Owns the observer, the debouncer and the pass runner for one input."""

    def __init__(
        self,
        config: BuildConfig,
        orchestrator: Optional[Orchestrator] = None,
        observer_factory: Callable[[], object] = Observer,
    ):
        self.config = config
        self.orchestrator = (
            orchestrator if orchestrator is not None else Orchestrator(config.options)
        )
        self.observer_factory = observer_factory
        self.observer = None
        self.last_result: Optional[PassResult] = None
        self.failures = 0
        self.runner = CoalescingRunner(self.rebuild)
        self.debouncer = Debouncer(config.debounce, self._on_changes)
        self.handler = StyleEventHandler(ChangeFilter(config.output_path), self.debouncer)
        self._watches: dict[str, object] = {}

    @property
    def pass_count(self) -> int:
        return self.runner.runs

    def _on_changes(self, paths: list[Path]) -> None:
        self.runner.request()

    def rebuild(self) -> Optional[PassResult]:
        """Run one pass; failures are logged and the previous output kept."""
        try:
            result = self.orchestrator.process(self.config.input_path)
        except StyleCacheError as e:
            self.failures += 1
            log.error(f"Build failed: {e}")
            log.dim("Keeping previous output")
            # Keep watching the entry point so fixing it triggers a pass
            self.sync_watches(self.last_result)
            return None

        write_output(result, self.config)
        log.success(
            f"[{self.runner.runs}] {result.strategy.value} build in "
            f"{format_duration(result.duration)} ({result.candidates} candidates)"
        )
        self.last_result = result
        self.sync_watches(result)
        return result

    def sync_watches(self, result: Optional[PassResult]) -> None:
        """Align the observer's watches with the latest dependency manifest."""
        if self.observer is None:
            return

        wanted = watch_targets(self.config.input_path, result)

        for key in list(self._watches):
            directory, recursive = key.rsplit("|", 1)
            if wanted.get(directory) != (recursive == "r"):
                self.observer.unschedule(self._watches.pop(key))

        for directory, recursive in wanted.items():
            key = f"{directory}|{'r' if recursive else 'f'}"
            if key in self._watches:
                continue
            if not os.path.isdir(directory):
                log.warning(f"Cannot watch missing directory: {directory}")
                continue
            try:
                self._watches[key] = self.observer.schedule(
                    self.handler, directory, recursive=recursive
                )
                log.dim(f"Watching: {directory}{' (recursive)' if recursive else ''}")
            except OSError as e:
                log.warning(f"Could not watch {directory}: {e}")

    @property
    def watched(self) -> dict[str, bool]:
        return {
            key.rsplit("|", 1)[0]: key.endswith("|r") for key in self._watches
        }

    def start(self) -> None:
        self.observer = self.observer_factory()
        self.runner.request()
        self.observer.start()

    def stop(self) -> None:
        self.debouncer.cancel()
        if self.observer is not None:
            self.observer.stop()
            self.observer.join(timeout=5)
            self.observer = None


# =============================================================================
# Watch Command
# =============================================================================


def cmd_watch(args: argparse.Namespace) -> int:
    """Execute the watch command."""
    try:
        config = config_from_args(args)
    except ConfigError as e:
        log.error(str(e))
        return 1

    if config.output_path is None:
        log.error("Watch mode needs an output file (-o/--output)")
        return 1

    log.verbose = config.verbose
    log.header(f"stylecache watch: {config.input_path.name}")

    session = WatchSession(config)
    session.start()

    log.info("")
    log.info("Watching for changes... (Ctrl+C to stop)")
    log.info("")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        log.info("")
        log.header("Shutting down")
        session.stop()
        log.info(f"Passes performed: {session.pass_count}")
        log.success("Watch mode stopped")

    return 0
