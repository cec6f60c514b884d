"""Sinks that receive resolved logical events."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from .exceptions import LoaderError
from .loaders import load_file
from .models import EventKind, FileChangedEvent

logger = logging.getLogger(__name__)


class EventSink(ABC):
    """
    Receiver of logical events.

    Implementations must return quickly; buffering or retrying a slow
    downstream is the sink's job, not the coalescer's.
    """

    @abstractmethod
    def notify(self, event_kind: EventKind, path: Path, timestamp: float) -> None:
        """Handle one resolved event."""
        pass


def build_event(
    event_kind: EventKind,
    path: Path,
    timestamp: float,
    load_content: bool = False,
) -> FileChangedEvent:
    """
    Build a FileChangedEvent, optionally attaching the note's content.

    Content is never loaded for deletions. A file that vanished before it
    could be read yields an event without content.
    """
    if not load_content or event_kind == EventKind.DELETED:
        return FileChangedEvent(event_kind=event_kind, path=path, timestamp=timestamp)

    try:
        loaded = load_file(path)
    except LoaderError as e:
        logger.warning(f"Could not load {path}: {e}")
        return FileChangedEvent(event_kind=event_kind, path=path, timestamp=timestamp)

    return FileChangedEvent(
        event_kind=event_kind,
        path=path,
        timestamp=timestamp,
        content=loaded.text,
        checksum=loaded.checksum,
    )


class LoggingSink(EventSink):
    """Logs every logical event. Stands in for a queue or API client."""

    _MESSAGES = {
        EventKind.CREATED: "File created",
        EventKind.CREATED_EMPTY: "File created (empty)",
        EventKind.MODIFIED: "File modified",
        EventKind.DELETED: "File deleted",
    }

    def __init__(self, include_checksum: bool = False):
        self.include_checksum = include_checksum

    def notify(self, event_kind: EventKind, path: Path, timestamp: float) -> None:
        event = build_event(event_kind, path, timestamp, load_content=self.include_checksum)
        message = self._MESSAGES[event_kind]
        if event.checksum:
            logger.info(f"{message}: {path} (sha256={event.checksum})")
        else:
            logger.info(f"{message}: {path}")


class CallbackSink(EventSink):
    """Adapts a plain callable taking a FileChangedEvent."""

    def __init__(
        self,
        callback: Callable[[FileChangedEvent], None],
        load_content: bool = False,
    ):
        self.callback = callback
        self.load_content = load_content

    def notify(self, event_kind: EventKind, path: Path, timestamp: float) -> None:
        self.callback(build_event(event_kind, path, timestamp, load_content=self.load_content))
