"""Tests for the data models and id generation."""
import re
import threading

import pytest
from pydantic import ValidationError

from notevault.models.schema import (
    Note,
    NoteExport,
    NotePage,
    NoteVersion,
    VersionEvent,
    epoch_now,
    generate_id,
    normalize_title,
)

ULID_RE = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$")


class TestGenerateId:
    """Tests for ULID generation."""

    def test_format(self):
        assert ULID_RE.match(generate_id())

    def test_ids_are_strictly_increasing(self):
        ids = [generate_id() for _ in range(2000)]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_unique_across_threads(self):
        results = []
        lock = threading.Lock()

        def worker():
            local = [generate_id() for _ in range(500)]
            with lock:
                results.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(results)) == 2000


class TestNormalizeTitle:
    """Tests for title trimming and the blank-title fallback."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Shopping list", "Shopping list"),
            ("  padded  ", "padded"),
            ("", "Untitled"),
            ("   \t\n", "Untitled"),
            (None, "Untitled"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_title(raw) == expected

    def test_custom_default(self):
        assert normalize_title(" ", default="Draft") == "Draft"


class TestNoteModel:
    """Tests for the Note model."""

    def test_defaults(self):
        now = epoch_now()
        note = Note(owner_id="alice", title="T", created_at=now, updated_at=now)
        assert ULID_RE.match(note.id)
        assert note.body == ""
        assert note.deleted_at is None
        assert not note.is_deleted

    def test_is_deleted(self):
        note = Note(
            owner_id="alice", title="T", created_at=1, updated_at=1, deleted_at=2
        )
        assert note.is_deleted

    def test_empty_owner_rejected(self):
        with pytest.raises(ValidationError):
            Note(owner_id="  ", title="T", created_at=1, updated_at=1)

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            Note(owner_id="a", title="T", created_at=1, updated_at=1, tags=["x"])


class TestNoteVersionModel:
    """Tests for the NoteVersion model."""

    def _version(self, **overrides):
        data = dict(
            note_id="n1",
            owner_id="alice",
            sequence=1,
            title="T",
            body="B",
            source_updated_at=10,
            created_at=11,
            event=VersionEvent.UPDATE,
        )
        data.update(overrides)
        return NoteVersion(**data)

    def test_event_from_string(self):
        assert self._version(event="rollback").event is VersionEvent.ROLLBACK

    def test_sequence_starts_at_one(self):
        with pytest.raises(ValidationError):
            self._version(sequence=0)

    def test_frozen(self):
        version = self._version()
        with pytest.raises(ValidationError):
            version.body = "changed"


def test_note_page_len():
    note = Note(owner_id="a", title="T", created_at=1, updated_at=1)
    assert len(NotePage(items=[note, note])) == 2
    assert NotePage().next_cursor is None


def test_note_export_media_type():
    export = NoteExport(filename="a.md", content="x")
    assert export.media_type.startswith("text/markdown")
