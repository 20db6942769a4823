"""Tests for the VersionRepository (Version Log)."""
import pytest
from sqlalchemy import select

from notevault.exceptions import ContentionError
from notevault.models.db_models import DBNoteVersion
from notevault.models.schema import Note, VersionEvent
from notevault.storage.note_repository import NoteRepository
from notevault.storage.transaction import transaction
from notevault.storage.version_repository import VersionRepository
from tests.fakes import SequentialIds

OWNER = "alice"


@pytest.fixture
def note(session_factory):
    note = Note(
        id="n1", owner_id=OWNER, title="Draft", body="v1", created_at=100, updated_at=100
    )
    with transaction(session_factory, write=True) as session:
        NoteRepository(session).create(note)
    return note


class TestSnapshot:
    """Tests for writing snapshots."""

    def test_first_snapshot_has_sequence_one(self, session_factory, note):
        with transaction(session_factory, write=True) as session:
            version = VersionRepository(session, SequentialIds("V")).snapshot(
                note, VersionEvent.UPDATE, at=150
            )
        assert version.sequence == 1
        assert version.id == "V0000000000000000000000001"
        assert version.title == "Draft"
        assert version.body == "v1"
        assert version.source_updated_at == 100
        assert version.created_at == 150
        assert version.event is VersionEvent.UPDATE

    def test_sequences_increase_per_note(self, session_factory, note):
        other = note.model_copy(update={"id": "n2"})
        with transaction(session_factory, write=True) as session:
            NoteRepository(session).create(other)
            versions = VersionRepository(session)
            seqs = [versions.snapshot(note, VersionEvent.UPDATE, 150).sequence for _ in range(3)]
            other_seq = versions.snapshot(other, VersionEvent.DELETE, 150).sequence
        assert seqs == [1, 2, 3]
        assert other_seq == 1

    def test_duplicate_sequence_is_contention(self, session_factory, note):
        with transaction(session_factory, write=True) as session:
            VersionRepository(session).snapshot(note, VersionEvent.UPDATE, 150)

        # A writer that computed its sequence before the first one committed
        with pytest.raises(ContentionError) as exc_info:
            with transaction(session_factory, write=True) as session:
                versions = VersionRepository(session)
                versions.next_sequence = lambda note_id, owner_id: 1
                versions.snapshot(note, VersionEvent.UPDATE, 160)
        assert exc_info.value.retryable

        with transaction(session_factory) as session:
            rows = session.scalars(select(DBNoteVersion)).all()
        assert len(rows) == 1


class TestReadVersions:
    """Tests for listing and looking up versions."""

    @pytest.fixture
    def history(self, session_factory, note):
        with transaction(session_factory, write=True) as session:
            versions = VersionRepository(session)
            return [
                versions.snapshot(
                    note.model_copy(update={"body": f"v{i}"}), VersionEvent.UPDATE, 150 + i
                )
                for i in range(1, 6)
            ]

    def test_list_newest_first_with_limit(self, session_factory, history):
        with transaction(session_factory) as session:
            listed = VersionRepository(session).list_by_note("n1", OWNER, 3)
        assert [v.sequence for v in listed] == [5, 4, 3]
        assert [v.body for v in listed] == ["v5", "v4", "v3"]

    def test_list_is_owner_scoped(self, session_factory, history):
        with transaction(session_factory) as session:
            assert VersionRepository(session).list_by_note("n1", "bob", 10) == []

    def test_find_by_id_is_fully_scoped(self, session_factory, history):
        version_id = history[0].id
        with transaction(session_factory) as session:
            versions = VersionRepository(session)
            assert versions.find_by_id(version_id, "n1", OWNER) == history[0]
            assert versions.find_by_id(version_id, "n2", OWNER) is None
            assert versions.find_by_id(version_id, "n1", "bob") is None
            assert versions.find_by_id("missing", "n1", OWNER) is None
