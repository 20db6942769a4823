"""Repository for the current state of notes."""

import logging
from typing import List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notevault.exceptions import NoteConflictError
from notevault.models.db_models import DBNote
from notevault.models.schema import Note, NotePage
from notevault.storage.cursor import PageCursor
from notevault.utils import escape_like_pattern

logger = logging.getLogger(__name__)


class NoteRepository:
    """Note Store: reads and writes the ``notes`` table.

    The repository is bound to the session of the caller's transaction and
    never commits on its own; see ``notevault.storage.transaction``. Every
    query is scoped by owner, and a note owned by someone else is simply not
    found.
    """

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _db_note_to_model(db_note: DBNote) -> Note:
        """Convert a SQLAlchemy DBNote to a domain Note."""
        return Note(
            id=db_note.id,
            owner_id=db_note.owner_id,
            title=db_note.title,
            body=db_note.body,
            created_at=db_note.created_at,
            updated_at=db_note.updated_at,
            deleted_at=db_note.deleted_at,
        )

    def _find(
        self,
        note_id: str,
        owner_id: str,
        include_deleted: bool,
        for_update: bool,
    ) -> Optional[Note]:
        query = select(DBNote).where(
            DBNote.id == note_id, DBNote.owner_id == owner_id
        )
        if not include_deleted:
            query = query.where(DBNote.deleted_at.is_(None))
        if for_update:
            # FOR UPDATE on PostgreSQL; SQLite renders nothing and relies on
            # the BEGIN IMMEDIATE of the enclosing write transaction
            query = query.with_for_update()
        # update/soft_delete/restore bypass the identity map, so always reload
        db_note = self.session.scalar(
            query.execution_options(populate_existing=True)
        )
        if db_note is None:
            return None
        return self._db_note_to_model(db_note)

    def create(self, note: Note) -> Note:
        """Insert a new active note.

        Raises:
            NoteConflictError: A note with this id already exists.
        """
        self.session.add(
            DBNote(
                id=note.id,
                owner_id=note.owner_id,
                title=note.title,
                body=note.body,
                created_at=note.created_at,
                updated_at=note.updated_at,
                deleted_at=None,
            )
        )
        try:
            self.session.flush()
        except IntegrityError as e:
            raise NoteConflictError(note.id, original_error=e) from e
        return note

    def find_active(self, note_id: str, owner_id: str) -> Optional[Note]:
        """Get an active (not soft-deleted) note owned by ``owner_id``."""
        return self._find(note_id, owner_id, include_deleted=False, for_update=False)

    def find_active_for_update(self, note_id: str, owner_id: str) -> Optional[Note]:
        """Like find_active, but locks the row for the rest of the transaction."""
        return self._find(note_id, owner_id, include_deleted=False, for_update=True)

    def find_any(self, note_id: str, owner_id: str) -> Optional[Note]:
        """Get a note owned by ``owner_id`` whether or not it is soft-deleted."""
        return self._find(note_id, owner_id, include_deleted=True, for_update=False)

    def find_any_for_update(self, note_id: str, owner_id: str) -> Optional[Note]:
        """Like find_any, but locks the row for the rest of the transaction."""
        return self._find(note_id, owner_id, include_deleted=True, for_update=True)

    def update(self, note: Note) -> int:
        """Overwrite title, body and updated_at of an active note.

        Returns:
            Number of rows affected. 0 means the note is gone or deleted;
            callers that just locked it should treat that as a vanished note.
        """
        result = self.session.execute(
            update(DBNote)
            .where(
                DBNote.id == note.id,
                DBNote.owner_id == note.owner_id,
                DBNote.deleted_at.is_(None),
            )
            .values(title=note.title, body=note.body, updated_at=note.updated_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def soft_delete(self, note_id: str, owner_id: str, at: int) -> int:
        """Mark a note deleted at ``at``. A second call affects no rows."""
        result = self.session.execute(
            update(DBNote)
            .where(
                DBNote.id == note_id,
                DBNote.owner_id == owner_id,
                DBNote.deleted_at.is_(None),
            )
            .values(deleted_at=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def restore(self, note: Note) -> int:
        """Clear deleted_at and rewrite content from ``note`` (rollback of a deleted note)."""
        result = self.session.execute(
            update(DBNote)
            .where(DBNote.id == note.id, DBNote.owner_id == note.owner_id)
            .values(
                title=note.title,
                body=note.body,
                updated_at=note.updated_at,
                deleted_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def list_active(self, owner_id: str, search: Optional[str] = None) -> List[Note]:
        """List active notes, newest change first.

        Args:
            owner_id: Whose notes to list.
            search: Optional case-insensitive substring matched against the
                title or the body. LIKE wildcards in it are taken literally.

        Returns:
            Notes ordered by updated_at descending, ties broken by id descending.
        """
        query = select(DBNote).where(
            DBNote.owner_id == owner_id, DBNote.deleted_at.is_(None)
        )
        if search:
            # Case folding of both the column and the term happens in SQL
            pattern = f"%{escape_like_pattern(search)}%"
            query = query.where(
                or_(
                    DBNote.title.ilike(pattern, escape="\\"),
                    DBNote.body.ilike(pattern, escape="\\"),
                )
            )
        query = query.order_by(DBNote.updated_at.desc(), DBNote.id.desc())
        db_notes = self.session.scalars(
            query.execution_options(populate_existing=True)
        ).all()
        return [self._db_note_to_model(n) for n in db_notes]

    def list_page(
        self,
        owner_id: str,
        cursor: Optional[PageCursor],
        page_size: int,
    ) -> NotePage:
        """One page of active notes in (updated_at DESC, id DESC) order.

        Fetches one row more than requested; its presence is what tells us a
        next page exists, without a separate count query.
        """
        query = select(DBNote).where(
            DBNote.owner_id == owner_id, DBNote.deleted_at.is_(None)
        )
        if cursor is not None:
            query = query.where(
                or_(
                    DBNote.updated_at < cursor.updated_at,
                    and_(
                        DBNote.updated_at == cursor.updated_at,
                        DBNote.id < cursor.note_id,
                    ),
                )
            )
        query = query.order_by(DBNote.updated_at.desc(), DBNote.id.desc()).limit(
            page_size + 1
        )
        db_notes = list(
            self.session.scalars(
                query.execution_options(populate_existing=True)
            ).all()
        )

        has_more = len(db_notes) > page_size
        if has_more:
            db_notes = db_notes[:page_size]
        notes = [self._db_note_to_model(n) for n in db_notes]

        next_cursor = None
        if has_more and notes:
            last = notes[-1]
            next_cursor = PageCursor(updated_at=last.updated_at, note_id=last.id).encode()
        return NotePage(items=notes, next_cursor=next_cursor)
