"""Data models for the obsidian-sync package."""

from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from pathlib import Path
from typing import Optional
import time


class Op(Flag):
    """Raw filesystem operation mask. Values may be combined."""
    NONE = 0
    CREATE = auto()
    WRITE = auto()
    REMOVE = auto()
    RENAME = auto()
    CHMOD = auto()


class ChangeFlag(Flag):
    """Accumulated state of a pending path since it was last resolved."""
    NONE = 0
    CREATED = auto()
    MODIFIED = auto()
    DELETED = auto()


class EventKind(Enum):
    """Logical events reported downstream."""
    CREATED = "created"
    CREATED_EMPTY = "created-empty"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass
class RawFSEvent:
    """
    Raw event from the notification source before coalescing.

    Attributes:
        path: Absolute path the operation applies to
        op: Operation mask
        is_directory: Whether the source reported a directory
        timestamp: Unix timestamp when the event was received
    """
    path: Path
    op: Op
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass
class PendingChange:
    """
    Union of all raw events seen for a path since it was last resolved.

    Attributes:
        path: Absolute path of the file
        flags: Accumulated change flags
        last_seen: Monotonic time of the latest raw event
        timestamp: Unix timestamp of the latest raw event
    """
    path: Path
    flags: ChangeFlag = ChangeFlag.NONE
    last_seen: float = field(default_factory=time.monotonic)
    timestamp: float = field(default_factory=time.time)

    @property
    def created(self) -> bool:
        return bool(self.flags & ChangeFlag.CREATED)

    @property
    def modified(self) -> bool:
        return bool(self.flags & ChangeFlag.MODIFIED)

    @property
    def deleted(self) -> bool:
        return bool(self.flags & ChangeFlag.DELETED)


@dataclass(frozen=True)
class FileChangedEvent:
    """
    A resolved logical change for a single file.

    Attributes:
        event_kind: The resolved logical event
        path: Full absolute path to the affected file
        timestamp: Unix timestamp of the latest raw event for the file
        content: File content, when loaded
        checksum: SHA-256 of the content, when loaded
    """
    event_kind: EventKind
    path: Path
    timestamp: float = field(default_factory=time.time)
    content: Optional[str] = None
    checksum: Optional[str] = None

    def __post_init__(self):
        if not self.path.is_absolute():
            raise ValueError(f"path must be absolute: {self.path}")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data = {
            "event_type": self.event_kind.value,
            "file_path": str(self.path),
            "timestamp": self.timestamp,
        }
        if self.content is not None:
            data["content"] = self.content
        if self.checksum is not None:
            data["checksum"] = self.checksum
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FileChangedEvent":
        """Create from dictionary."""
        return cls(
            event_kind=EventKind(data["event_type"]),
            path=Path(data["file_path"]),
            timestamp=data.get("timestamp", time.time()),
            content=data.get("content"),
            checksum=data.get("checksum"),
        )


@dataclass
class MarkdownFile:
    """A loaded markdown note."""
    path: Path
    content: bytes
    checksum: str

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

