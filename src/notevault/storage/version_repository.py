"""Repository for the append-only note version log."""

import logging
from typing import Callable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notevault.exceptions import ContentionError
from notevault.models.db_models import DBNoteVersion
from notevault.models.schema import Note, NoteVersion, VersionEvent, generate_id

logger = logging.getLogger(__name__)


class VersionRepository:
    """Version Log: inserts and reads rows of ``note_versions``.

    Rows are only ever inserted. Sequence numbers are derived from the rows
    already present for the note, so correctness relies on the caller holding
    the note's write lock; the unique (note_id, sequence) constraint catches
    a writer that did not.
    """

    def __init__(self, session: Session, id_factory: Callable[[], str] = generate_id):
        self.session = session
        self._id_factory = id_factory

    @staticmethod
    def _db_version_to_model(db_version: DBNoteVersion) -> NoteVersion:
        return NoteVersion(
            id=db_version.id,
            note_id=db_version.note_id,
            owner_id=db_version.owner_id,
            sequence=db_version.sequence,
            title=db_version.title,
            body=db_version.body,
            source_updated_at=db_version.source_updated_at,
            created_at=db_version.created_at,
            event=VersionEvent(db_version.event),
        )

    def next_sequence(self, note_id: str, owner_id: str) -> int:
        """``max(sequence) + 1`` for the note, or 1 if it has no versions yet."""
        current = self.session.scalar(
            select(func.coalesce(func.max(DBNoteVersion.sequence), 0)).where(
                DBNoteVersion.note_id == note_id,
                DBNoteVersion.owner_id == owner_id,
            )
        )
        return int(current or 0) + 1

    def snapshot(self, note: Note, event: VersionEvent, at: int) -> NoteVersion:
        """Record ``note`` as it is stored right now, before it gets changed.

        Must run inside the caller's write transaction, after the locking read
        and before the mutation.

        Raises:
            ContentionError: Another writer took the same sequence number.
        """
        version = NoteVersion(
            id=self._id_factory(),
            note_id=note.id,
            owner_id=note.owner_id,
            sequence=self.next_sequence(note.id, note.owner_id),
            title=note.title,
            body=note.body,
            source_updated_at=note.updated_at,
            created_at=at,
            event=event,
        )
        self.session.add(
            DBNoteVersion(
                id=version.id,
                note_id=version.note_id,
                owner_id=version.owner_id,
                sequence=version.sequence,
                title=version.title,
                body=version.body,
                source_updated_at=version.source_updated_at,
                created_at=version.created_at,
                event=version.event.value,
            )
        )
        try:
            self.session.flush()
        except IntegrityError as e:
            raise ContentionError(
                "Concurrent snapshot for the same note",
                note_id=note.id,
                original_error=e,
            ) from e
        logger.debug(
            f"Snapshot {version.event.value} #{version.sequence} for note {note.id}"
        )
        return version

    def list_by_note(self, note_id: str, owner_id: str, limit: int) -> List[NoteVersion]:
        """Up to ``limit`` versions of a note, newest (highest sequence) first."""
        query = (
            select(DBNoteVersion)
            .where(
                DBNoteVersion.note_id == note_id,
                DBNoteVersion.owner_id == owner_id,
            )
            .order_by(DBNoteVersion.sequence.desc(), DBNoteVersion.id.desc())
            .limit(limit)
        )
        return [self._db_version_to_model(v) for v in self.session.scalars(query).all()]

    def find_by_id(
        self, version_id: str, note_id: str, owner_id: str
    ) -> Optional[NoteVersion]:
        """Get a version only if it belongs to this note and this owner."""
        db_version = self.session.scalar(
            select(DBNoteVersion).where(
                DBNoteVersion.id == version_id,
                DBNoteVersion.note_id == note_id,
                DBNoteVersion.owner_id == owner_id,
            )
        )
        if db_version is None:
            return None
        return self._db_version_to_model(db_version)
