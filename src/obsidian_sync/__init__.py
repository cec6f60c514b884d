"""
Obsidian Sync

Watches a markdown vault and turns noisy filesystem notifications into
one logical event per changed note.

Features:
- Recursive directory registration, skipping hidden directories
- Incremental registration of newly created directories
- Per-path coalescing behind a shared quiet-period timer
- Logical events: created, created-empty, modified, deleted
- Stale-change dropping to bound buffering
"""

from .models import (
    Op,
    ChangeFlag,
    EventKind,
    RawFSEvent,
    PendingChange,
    FileChangedEvent,
    MarkdownFile,
)

from .config import WatcherConfig, AppConfig

from .exceptions import (
    WatcherError,
    SourceError,
    WatchRootError,
    WatcherAlreadyRunningError,
    ConfigError,
    LoaderError,
    UnsupportedFileTypeError,
)

from .loaders import load_file, load_markdown_file
from .dispatcher import EventSink, LoggingSink, CallbackSink, build_event
from .fs_watcher import FSEventHandler, NotificationSource, WatchRegistrar
from .event_processor import EventCoalescer, flags_for_op, resolve_change
from .process import Watcher
from .logging_config import setup_logging


__all__ = [
    # Models
    "Op",
    "ChangeFlag",
    "EventKind",
    "RawFSEvent",
    "PendingChange",
    "FileChangedEvent",
    "MarkdownFile",
    # Config
    "WatcherConfig",
    "AppConfig",
    # Exceptions
    "WatcherError",
    "SourceError",
    "WatchRootError",
    "WatcherAlreadyRunningError",
    "ConfigError",
    "LoaderError",
    "UnsupportedFileTypeError",
    # Components
    "load_file",
    "load_markdown_file",
    "EventSink",
    "LoggingSink",
    "CallbackSink",
    "build_event",
    "FSEventHandler",
    "NotificationSource",
    "WatchRegistrar",
    "EventCoalescer",
    "flags_for_op",
    "resolve_change",
    "setup_logging",
    # Main Process
    "Watcher",
]

__version__ = "0.1.0"
