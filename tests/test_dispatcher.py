"""Tests for dispatcher module."""

import hashlib
import logging
from pathlib import Path

import pytest

from obsidian_sync.dispatcher import CallbackSink, EventSink, LoggingSink, build_event
from obsidian_sync.models import EventKind


class TestEventSink:
    """Tests for the sink interface."""

    def test_is_abstract(self):
        with pytest.raises(TypeError):
            EventSink()


class TestBuildEvent:
    """Tests for build_event."""

    def test_without_content(self, tmp_path):
        event = build_event(EventKind.MODIFIED, tmp_path / "a.md", 12.0)

        assert event.event_kind == EventKind.MODIFIED
        assert event.path == tmp_path / "a.md"
        assert event.timestamp == 12.0
        assert event.content is None

    def test_with_content(self, tmp_path):
        note = tmp_path / "a.md"
        note.write_text("# A")

        event = build_event(EventKind.CREATED, note, 1.0, load_content=True)

        assert event.content == "# A"
        assert event.checksum == hashlib.sha256(b"# A").hexdigest()

    def test_deleted_never_loads(self, tmp_path):
        note = tmp_path / "a.md"
        note.write_text("still here")

        event = build_event(EventKind.DELETED, note, 1.0, load_content=True)

        assert event.content is None
        assert event.checksum is None

    def test_vanished_file(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            event = build_event(EventKind.MODIFIED, tmp_path / "gone.md", 1.0, load_content=True)

        assert event.content is None
        assert "Could not load" in caplog.text


class TestLoggingSink:
    """Tests for LoggingSink."""

    @pytest.mark.parametrize("kind,message", [
        (EventKind.CREATED, "File created: "),
        (EventKind.CREATED_EMPTY, "File created (empty): "),
        (EventKind.MODIFIED, "File modified: "),
        (EventKind.DELETED, "File deleted: "),
    ])
    def test_logs_each_kind(self, kind, message, tmp_path, caplog):
        sink = LoggingSink()
        with caplog.at_level(logging.INFO, logger="obsidian_sync.dispatcher"):
            sink.notify(kind, tmp_path / "a.md", 1.0)

        assert f"{message}{tmp_path / 'a.md'}" in caplog.text

    def test_logs_checksum(self, tmp_path, caplog):
        note = tmp_path / "a.md"
        note.write_text("body")
        sink = LoggingSink(include_checksum=True)

        with caplog.at_level(logging.INFO, logger="obsidian_sync.dispatcher"):
            sink.notify(EventKind.MODIFIED, note, 1.0)

        assert hashlib.sha256(b"body").hexdigest() in caplog.text


class TestCallbackSink:
    """Tests for CallbackSink."""

    def test_forwards_events(self, tmp_path):
        received = []
        sink = CallbackSink(received.append)

        sink.notify(EventKind.DELETED, tmp_path / "a.md", 3.0)

        assert len(received) == 1
        assert received[0].to_dict() == {
            "event_type": "deleted",
            "file_path": str(tmp_path / "a.md"),
            "timestamp": 3.0,
        }

    def test_load_content(self, tmp_path):
        note = tmp_path / "a.md"
        note.write_text("text")
        received = []

        CallbackSink(received.append, load_content=True).notify(EventKind.CREATED, note, 1.0)

        assert received[0].content == "text"
