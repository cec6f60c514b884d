"""Filesystem notification source and directory registration using watchdog."""

import logging
import os
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

from .config import WatcherConfig
from .exceptions import SourceError, WatchRootError
from .models import Op, RawFSEvent

logger = logging.getLogger(__name__)

SourceItem = Union[RawFSEvent, Exception, None]


class FSEventHandler(FileSystemEventHandler):
    """
    Handler that converts watchdog events to RawFSEvent.

    A watchdog move becomes RENAME on the old path followed by CREATE on
    the new path. Synthetic events, which watchdog generates for the
    contents of a moved or newly created directory, are skipped.
    """

    def __init__(
        self,
        callback: Callable[[RawFSEvent], None],
        on_error: Callable[[Exception], None],
    ):
        super().__init__()
        self.callback = callback
        self.on_error = on_error

    def _emit(self, op: Op, path, is_directory: bool) -> None:
        """Emit a RawFSEvent to the callback."""
        raw_event = RawFSEvent(
            path=Path(os.fsdecode(path)),
            op=op,
            is_directory=is_directory,
            timestamp=time.time(),
        )
        self.callback(raw_event)

    def _safe_emit(self, event: FileSystemEvent, *emits) -> None:
        if event.is_synthetic:
            return
        try:
            for op, path in emits:
                self._emit(op, path, event.is_directory)
        except Exception as e:
            self.on_error(e)

    def on_created(self, event):
        self._safe_emit(event, (Op.CREATE, event.src_path))

    def on_deleted(self, event):
        self._safe_emit(event, (Op.REMOVE, event.src_path))

    def on_modified(self, event):
        self._safe_emit(event, (Op.WRITE, event.src_path))

    def on_moved(self, event):
        self._safe_emit(
            event,
            (Op.RENAME, event.src_path),
            (Op.CREATE, event.dest_path),
        )


class NotificationSource:
    """
    Per-directory watches feeding a single blocking stream.

    The first directory added outside any existing watch gets one recursive
    watchdog watch, so a whole vault costs one OS notification instance.
    Directories below it are added as bookkeeping only. Events are delivered
    only when the directory they happened in has been added, which keeps the
    per-directory semantics: an unregistered (e.g. hidden) directory is silent.

    The stream carries RawFSEvent items, Exception items for source errors,
    and a final None once the source is closed.
    """

    def __init__(self, observer: Optional[BaseObserver] = None):
        """
        Initialize the notification source.

        Args:
            observer: Watchdog observer to use (default: platform Observer)

        Raises:
            SourceError: If the observer cannot be created
        """
        try:
            self._observer = observer if observer is not None else Observer()
        except Exception as e:
            raise SourceError(f"failed to create file watcher: {e}") from e

        self._queue: "queue.Queue[SourceItem]" = queue.Queue()
        self._handler = FSEventHandler(self._deliver, self.report_error)
        self._roots: Dict[Path, ObservedWatch] = {}
        self._watched: Set[Path] = set()
        # _lock guards the sets; _schedule_lock serializes observer schedule calls
        self._lock = threading.Lock()
        self._schedule_lock = threading.Lock()
        self._started = False
        self._closed = False

    def start(self) -> None:
        """
        Start delivering events.

        Raises:
            SourceError: If the observer cannot be started
        """
        with self._lock:
            if self._closed:
                raise SourceError("notification source is closed")
            if self._started:
                return
            try:
                self._observer.start()
            except Exception as e:
                raise SourceError(f"failed to start file watcher: {e}") from e
            self._started = True

    def add(self, path: Path) -> bool:
        """
        Start delivering events that happen directly in a directory.

        Returns:
            True if the directory was added, False if already watched

        Raises:
            OSError: If the OS refuses the watch
            SourceError: If the source is closed
        """
        with self._schedule_lock:
            with self._lock:
                if self._closed:
                    raise SourceError("notification source is closed")
                if path in self._watched:
                    return False
                needs_watch = self._covering_root(path) is None

            # The observer holds its own lock while calling _deliver
            if needs_watch:
                watch = self._observer.schedule(self._handler, str(path), recursive=True)
                logger.debug(f"Scheduled observer watch on {path}")

            with self._lock:
                if needs_watch:
                    self._roots[path] = watch
                self._watched.add(path)
            return True

    def _covering_root(self, path: Path) -> Optional[Path]:
        """Find the scheduled watch root containing path. Caller holds the lock."""
        for root in self._roots:
            if path == root or root in path.parents:
                return root
        return None

    def remove(self, path: Path) -> bool:
        """
        Stop delivering events for a directory.

        Removing a scheduled root also releases its observer watch.

        Returns:
            True if the directory was removed, False if it was not watched
        """
        with self._schedule_lock:
            with self._lock:
                if self._closed or path not in self._watched:
                    return False
                self._watched.discard(path)
                watch = self._roots.pop(path, None)

            if watch is not None:
                try:
                    self._observer.unschedule(watch)
                except KeyError:
                    # Emitter already gone, e.g. after the directory was deleted
                    logger.debug(f"Watch for {path} was already released")
            return True

    def watched_paths(self) -> List[Path]:
        with self._lock:
            return list(self._watched)

    def _deliver(self, raw_event: RawFSEvent) -> None:
        with self._lock:
            if raw_event.path.parent not in self._watched:
                return
        self._queue.put(raw_event)

    def report_error(self, error: Exception) -> None:
        """Put an error on the stream."""
        self._queue.put(error)

    def get(self, timeout: Optional[float] = None) -> SourceItem:
        """
        Block until the next stream item is available.

        Raises:
            queue.Empty: If timeout expires first
        """
        return self._queue.get(timeout=timeout)

    def close(self) -> None:
        """Release the observer and mark the stream closed. Safe to repeat."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._watched.clear()
            self._roots.clear()
            started = self._started

        if started:
            self._observer.stop()
            self._observer.join(timeout=5.0)
        self._queue.put(None)

    @property
    def closed(self) -> bool:
        return self._closed


class WatchRegistrar:
    """
    Registers vault directories with the notification source.

    Hidden directories below the root are never registered.
    """

    def __init__(self, source: NotificationSource, config: Optional[WatcherConfig] = None):
        self.source = source
        self.config = config or WatcherConfig()
        self._registered: Set[Path] = set()
        self._lock = threading.Lock()

    def add_recursive(self, root: Path) -> int:
        """
        Register the root and every non-hidden directory below it.

        Uses an explicit stack rather than recursion. Failures below the
        root are logged and skipped.

        Args:
            root: Directory to walk

        Returns:
            Number of directories newly registered

        Raises:
            WatchRootError: If the root itself cannot be listed
        """
        root = Path(root)
        count = 0
        stack = [root]
        visited: Set[Path] = set()

        while stack:
            directory = stack.pop()

            try:
                real = directory.resolve()
                if real in visited:
                    continue
                visited.add(real)
                with os.scandir(directory) as entries:
                    children = [
                        Path(entry.path)
                        for entry in entries
                        if entry.is_dir(follow_symlinks=self.config.follow_symlinks)
                    ]
            except OSError as e:
                if directory == root:
                    raise WatchRootError(f"failed to add directories: {e}") from e
                logger.warning(f"Error accessing {directory}: {e}")
                continue

            if self._register(directory):
                count += 1

            for child in sorted(children, reverse=True):
                if self.config.is_hidden_dir(child):
                    logger.debug(f"Skipping hidden directory: {child}")
                    continue
                stack.append(child)

        return count

    def add_directory(self, path: Path) -> int:
        """
        Register a directory that appeared under the root, with its subtree.

        A directory moved into place arrives with its children already in
        it and no create events for them, so the whole tree is walked.

        Returns:
            Number of directories newly registered
        """
        if self.config.is_hidden_dir(path):
            logger.debug(f"Not watching hidden directory: {path}")
            return 0
        try:
            return self.add_recursive(path)
        except WatchRootError as e:
            logger.warning(f"Directory {path} vanished before it could be watched: {e}")
            return 0

    def forget_directory(self, path: Path) -> int:
        """
        Drop the watch for a removed directory and any directory below it.

        Returns:
            Number of watches dropped
        """
        with self._lock:
            gone = [p for p in self._registered if p == path or path in p.parents]
            for p in gone:
                self._registered.discard(p)

        for p in gone:
            self.source.remove(p)
            logger.debug(f"Stopped watching removed directory: {p}")
        return len(gone)

    def _register(self, path: Path) -> bool:
        with self._lock:
            if path in self._registered:
                return False

        try:
            self.source.add(path)
        except (OSError, SourceError) as e:
            logger.warning(f"Failed to watch directory {path}: {e}")
            return False

        with self._lock:
            self._registered.add(path)
        logger.debug(f"Added directory to watch: {path}")
        return True

    def is_registered(self, path: Path) -> bool:
        with self._lock:
            return path in self._registered

    def registered_directories(self) -> List[Path]:
        with self._lock:
            return sorted(self._registered)

    def __len__(self) -> int:
        with self._lock:
            return len(self._registered)
