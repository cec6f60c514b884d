"""Watcher lifecycle: startup registration, the consumer loop, and shutdown."""

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional

from .config import WatcherConfig
from .dispatcher import EventSink, LoggingSink
from .event_processor import EventCoalescer
from .exceptions import WatcherAlreadyRunningError, WatcherError
from .fs_watcher import NotificationSource, WatchRegistrar

logger = logging.getLogger(__name__)


class Watcher:
    """
    Watches one vault directory and reports logical file events.

    ``start()`` registers the tree, runs the consumer thread, and blocks
    until ``stop()`` is called. ``start_async()`` returns immediately.
    """

    def __init__(
        self,
        root: Path,
        config: Optional[WatcherConfig] = None,
        sink: Optional[EventSink] = None,
        source_factory: Callable[[], NotificationSource] = NotificationSource,
    ):
        """
        Initialize the watcher.

        Args:
            root: Directory to watch
            config: Watcher configuration
            sink: Receiver of logical events (default: LoggingSink)
            source_factory: Creates the notification source on start
        """
        self.root = Path(root).resolve()
        self.config = config or WatcherConfig()
        self.sink = sink or LoggingSink()
        self._source_factory = source_factory

        self._source: Optional[NotificationSource] = None
        self._registrar: Optional[WatchRegistrar] = None
        self._coalescer: Optional[EventCoalescer] = None
        self._thread: Optional[threading.Thread] = None

        self._running = False
        self._stop_event = threading.Event()
        self._lock = threading.Lock()

    def start(self) -> None:
        """
        Start watching (blocking).

        Returns once stop() is called.

        Raises:
            WatcherAlreadyRunningError: If already running
            SourceError: If the notification source cannot be created
            WatchRootError: If the root cannot be traversed
        """
        self._start()

        try:
            while not self._stop_event.is_set():
                self._stop_event.wait(timeout=0.5)
        except KeyboardInterrupt:
            pass
        finally:
            self._shutdown()

    def start_async(self) -> None:
        """
        Start watching in the background.

        Raises:
            WatcherAlreadyRunningError: If already running
            SourceError: If the notification source cannot be created
            WatchRootError: If the root cannot be traversed
        """
        self._start()

    def _start(self) -> None:
        with self._lock:
            if self._running:
                raise WatcherAlreadyRunningError("Watcher is already running")
            self._running = True
            self._stop_event.clear()

        source = None
        try:
            source = self._source_factory()
            source.start()
            registrar = WatchRegistrar(source, self.config)
            count = registrar.add_recursive(self.root)
        except WatcherError as e:
            logger.error(f"Failed to start watcher for {self.root}: {e}")
            if source is not None:
                source.close()
            with self._lock:
                self._running = False
            raise

        coalescer = EventCoalescer(self.sink, registrar, self.config)
        thread = threading.Thread(
            target=self._consume_loop,
            args=(source, coalescer),
            name="EventConsumer",
            daemon=True,
        )

        with self._lock:
            self._source = source
            self._registrar = registrar
            self._coalescer = coalescer
            self._thread = thread

        thread.start()
        logger.info(f"Watching {self.root} for changes ({count} directories)")

    def stop(self) -> None:
        """
        Stop watching and release the notification source.

        Does nothing if the watcher was never started. Safe to call twice.
        """
        if self._source is None:
            return
        self._stop_event.set()
        self._shutdown()

    def _shutdown(self) -> None:
        """Internal shutdown procedure."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            source = self._source
            coalescer = self._coalescer
            thread = self._thread
            self._thread = None

        self._stop_event.set()

        if source is not None:
            source.close()

        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)

        if coalescer is not None:
            for event in coalescer.close():
                logger.debug(f"Resolved on shutdown: {event.event_kind.value} {event.path}")

        logger.info(f"Stopped watching {self.root}")

    def _consume_loop(self, source: NotificationSource, coalescer: EventCoalescer) -> None:
        """Worker loop that feeds raw events from the source to the coalescer."""
        logger.debug(f"Event consumer started for {self.root}")

        while True:
            item = source.get()

            if item is None:
                logger.debug("Notification source closed, consumer exiting")
                return

            if isinstance(item, Exception):
                logger.error(f"Watcher error: {item}")
                continue

            try:
                coalescer.ingest(item)
            except Exception as e:
                logger.error(f"Error handling event for {item.path}: {e}")

    def watched_directories(self) -> List[Path]:
        """Get the directories currently registered with the source."""
        if self._registrar is None:
            return []
        return self._registrar.registered_directories()

    @property
    def coalescer(self) -> Optional[EventCoalescer]:
        return self._coalescer

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    def close(self) -> None:
        """Stop the watcher and release all resources."""
        self.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
