"""Tests for models module."""

import json
import time
from pathlib import Path

import pytest

from obsidian_sync.models import (
    ChangeFlag,
    EventKind,
    FileChangedEvent,
    MarkdownFile,
    Op,
    PendingChange,
    RawFSEvent,
)


class TestEventKind:
    """Tests for EventKind enum."""

    def test_values(self):
        assert EventKind.CREATED.value == "created"
        assert EventKind.CREATED_EMPTY.value == "created-empty"
        assert EventKind.MODIFIED.value == "modified"
        assert EventKind.DELETED.value == "deleted"

    def test_from_value(self):
        assert EventKind("created-empty") == EventKind.CREATED_EMPTY


class TestOp:
    """Tests for the raw operation mask."""

    def test_combined(self):
        op = Op.CREATE | Op.WRITE
        assert op & Op.CREATE
        assert op & Op.WRITE
        assert not op & Op.REMOVE


class TestRawFSEvent:
    """Tests for RawFSEvent dataclass."""

    def test_defaults(self):
        before = time.time()
        event = RawFSEvent(path=Path("/vault/a.md"), op=Op.WRITE)

        assert event.is_directory is False
        assert before <= event.timestamp <= time.time()


class TestPendingChange:
    """Tests for PendingChange dataclass."""

    def test_starts_empty(self):
        change = PendingChange(path=Path("/vault/a.md"))
        assert change.flags == ChangeFlag.NONE
        assert not (change.created or change.modified or change.deleted)

    def test_flag_properties(self):
        change = PendingChange(
            path=Path("/vault/a.md"),
            flags=ChangeFlag.CREATED | ChangeFlag.DELETED,
        )
        assert change.created is True
        assert change.modified is False
        assert change.deleted is True


class TestFileChangedEvent:
    """Tests for FileChangedEvent dataclass."""

    def test_create_event(self):
        event = FileChangedEvent(
            event_kind=EventKind.MODIFIED,
            path=Path("/vault/a.md"),
            timestamp=1700000000.0,
        )
        assert event.content is None
        assert event.checksum is None

    def test_relative_path_raises(self):
        with pytest.raises(ValueError, match="path must be absolute"):
            FileChangedEvent(event_kind=EventKind.CREATED, path=Path("a.md"))

    def test_frozen(self):
        event = FileChangedEvent(event_kind=EventKind.CREATED, path=Path("/vault/a.md"))
        with pytest.raises(AttributeError):
            event.path = Path("/vault/b.md")

    def test_to_dict(self):
        event = FileChangedEvent(
            event_kind=EventKind.CREATED_EMPTY,
            path=Path("/vault/a.md"),
            timestamp=1700000000.0,
        )
        assert event.to_dict() == {
            "event_type": "created-empty",
            "file_path": "/vault/a.md",
            "timestamp": 1700000000.0,
        }

    def test_to_dict_with_content_is_json(self):
        event = FileChangedEvent(
            event_kind=EventKind.CREATED,
            path=Path("/vault/a.md"),
            timestamp=1.0,
            content="# Title",
            checksum="abc",
        )
        data = json.loads(json.dumps(event.to_dict()))
        assert data["content"] == "# Title"
        assert data["checksum"] == "abc"

    def test_from_dict(self):
        event = FileChangedEvent.from_dict({
            "event_type": "deleted",
            "file_path": "/vault/gone.md",
            "timestamp": 5.0,
        })
        assert event.event_kind == EventKind.DELETED
        assert event.path == Path("/vault/gone.md")
        assert event.timestamp == 5.0
        assert event.content is None


class TestMarkdownFile:
    """Tests for MarkdownFile dataclass."""

    def test_text_decodes_utf8(self):
        note = MarkdownFile(path=Path("/vault/a.md"), content="café".encode(), checksum="x")
        assert note.text == "café"

    def test_text_replaces_invalid_bytes(self):
        note = MarkdownFile(path=Path("/vault/a.md"), content=b"\xff ok", checksum="x")
        assert note.text.endswith(" ok")
