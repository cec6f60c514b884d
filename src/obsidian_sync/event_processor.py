"""Event coalescing: per-path buffering, a shared quiet-period timer, and resolution."""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config import WatcherConfig
from .dispatcher import EventSink
from .fs_watcher import WatchRegistrar
from .models import ChangeFlag, EventKind, FileChangedEvent, Op, PendingChange, RawFSEvent

logger = logging.getLogger(__name__)

_OP_FLAGS = (
    (Op.CREATE, ChangeFlag.CREATED),
    (Op.WRITE, ChangeFlag.MODIFIED),
    (Op.REMOVE, ChangeFlag.DELETED),
    # A rename destroys the old path; the new path gets its own CREATE.
    (Op.RENAME, ChangeFlag.DELETED),
)


def flags_for_op(op: Op) -> ChangeFlag:
    """Map a raw operation mask to the change flags it sets."""
    flags = ChangeFlag.NONE
    for raw, flag in _OP_FLAGS:
        if op & raw:
            flags |= flag
    return flags


def resolve_change(flags: ChangeFlag) -> Optional[EventKind]:
    """
    Resolve accumulated flags to a single logical event.

    Rules, first match wins:
    - DELETED in any combination → deleted
    - CREATED only → created-empty
    - CREATED and MODIFIED → created
    - MODIFIED only → modified
    - nothing set → None (unresolved)
    """
    if flags & ChangeFlag.DELETED:
        return EventKind.DELETED
    if flags & ChangeFlag.CREATED:
        if flags & ChangeFlag.MODIFIED:
            return EventKind.CREATED
        return EventKind.CREATED_EMPTY
    if flags & ChangeFlag.MODIFIED:
        return EventKind.MODIFIED
    return None


class EventCoalescer:
    """
    Turns raw filesystem events into one logical event per path.

    Every relevant raw event restarts a single quiet-period timer shared by
    the whole tree. When it expires, every pending path is swept: stale
    entries are dropped, the rest are resolved and sent to the sink.
    """

    def __init__(
        self,
        sink: EventSink,
        registrar: Optional[WatchRegistrar] = None,
        config: Optional[WatcherConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        """
        Initialize the coalescer.

        Args:
            sink: Receiver of resolved events
            registrar: Registrar notified of new and removed directories
            config: Watcher configuration
            clock: Monotonic clock used for staleness
            timer_factory: Factory with the threading.Timer signature
        """
        self.sink = sink
        self.registrar = registrar
        self.config = config or WatcherConfig()
        self._clock = clock
        self._timer_factory = timer_factory

        self._pending: Dict[Path, PendingChange] = {}
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._closed = False
        self._lock = threading.Lock()
        # Held for a whole sweep so sweeps reach the sink one after another
        self._dispatch_lock = threading.Lock()

    def ingest(self, raw_event: RawFSEvent) -> None:
        """
        Buffer one raw event.

        Directories are handed to the registrar and never buffered. Anything
        that is not a tracked markdown file is dropped.
        """
        path = raw_event.path

        if raw_event.is_directory or self._is_directory(path):
            self._handle_directory(raw_event)
            return

        if not self.config.is_markdown_file(path):
            return

        now = self._clock()
        flags = flags_for_op(raw_event.op)
        logger.debug(f"Raw {raw_event.op} event for {path}")

        with self._lock:
            if self._closed:
                return

            change = self._pending.get(path)
            if change is None:
                change = PendingChange(path=path, last_seen=now, timestamp=raw_event.timestamp)
                self._pending[path] = change

            change.last_seen = now
            change.timestamp = raw_event.timestamp
            change.flags |= flags

            self._restart_timer()

    def _is_directory(self, path: Path) -> bool:
        try:
            return path.is_dir()
        except OSError as e:
            logger.debug(f"Could not stat {path}: {e}")
            return False

    def _handle_directory(self, raw_event: RawFSEvent) -> None:
        if self.registrar is None:
            return

        if raw_event.op & Op.CREATE:
            logger.info(f"New directory created: {raw_event.path}")
            self.registrar.add_directory(raw_event.path)
        elif raw_event.op & (Op.REMOVE | Op.RENAME):
            self.registrar.forget_directory(raw_event.path)

    def _restart_timer(self) -> None:
        """Cancel the running timer and start a new one. Caller holds the lock."""
        if self._timer is not None:
            self._timer.cancel()

        self._generation += 1
        timer = self._timer_factory(
            self.config.debounce_seconds,
            self._on_timer,
            args=(self._generation,),
        )
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self, generation: int) -> None:
        with self._dispatch_lock:
            with self._lock:
                # A newer event restarted the window after this timer fired.
                if generation != self._generation:
                    return
                self._timer = None
                pending = self._detach()

            try:
                self._resolve(pending)
            except Exception as e:
                logger.error(f"Error resolving buffered events: {e}")

    def _detach(self) -> Dict[Path, PendingChange]:
        """Take the whole pending set. Caller holds the lock."""
        pending = self._pending
        self._pending = {}
        return pending

    def flush(self) -> List[FileChangedEvent]:
        """
        Sweep the pending set and dispatch resolved events.

        Every pending entry is removed, whatever its outcome.

        Returns:
            The events sent to the sink
        """
        with self._dispatch_lock:
            with self._lock:
                pending = self._detach()
            return self._resolve(pending)

    def _resolve(self, pending: Dict[Path, PendingChange]) -> List[FileChangedEvent]:
        now = self._clock()
        stale_after = self.config.stale_threshold_seconds
        dispatched = []

        for path, change in pending.items():
            if now - change.last_seen > stale_after:
                logger.debug(f"Dropping stale change for {path}")
                continue

            event_kind = resolve_change(change.flags)
            if event_kind is None:
                logger.warning(f"Unknown event pattern for: {path}")
                continue

            try:
                event = FileChangedEvent(event_kind=event_kind, path=path, timestamp=change.timestamp)
                self.sink.notify(event_kind, path, change.timestamp)
            except Exception as e:
                logger.error(f"Failed to dispatch {event_kind.value} {path}: {e}")
                continue

            dispatched.append(event)

        return dispatched

    def close(self) -> List[FileChangedEvent]:
        """
        Stop the timer and refuse further events.

        Returns:
            Events resolved by the final sweep (empty unless flush_on_stop)
        """
        with self._lock:
            self._closed = True
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        if self.config.flush_on_stop:
            return self.flush()

        with self._lock:
            self._pending.clear()
        return []

    def pending_count(self) -> int:
        """Get number of paths waiting for the quiet period."""
        with self._lock:
            return len(self._pending)

    def get_pending(self, path: Path) -> Optional[PendingChange]:
        """Get a copy of the pending change for a path, if any."""
        with self._lock:
            change = self._pending.get(path)
            if change is None:
                return None
            return PendingChange(
                path=change.path,
                flags=change.flags,
                last_seen=change.last_seen,
                timestamp=change.timestamp,
            )
