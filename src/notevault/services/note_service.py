"""Service layer for the note lifecycle and version history."""

import logging
from typing import Any, Callable, List, Optional

from notevault.config import NoteVaultConfig, config
from notevault.exceptions import (
    ErrorCode,
    NoteNotFoundError,
    NoteValidationError,
    VersionNotFoundError,
)
from notevault.models.db_models import get_session_factory, init_db
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
from notevault.observability import traced
from notevault.storage.cursor import PageCursor
from notevault.storage.note_repository import NoteRepository
from notevault.storage.transaction import transaction
from notevault.storage.version_repository import VersionRepository
from notevault.utils import export_filename

logger = logging.getLogger(__name__)


class NoteService:
    """Note lifecycle engine.

    Every change to an existing note goes through the same steps inside one
    write transaction: lock the note, snapshot what is stored, mutate, commit.
    The version log therefore always holds the state each change replaced,
    and a failure at any step leaves both the note and its history untouched.
    Timestamps for a change are read from the clock once the lock is held.
    """

    def __init__(
        self,
        engine: Optional[Any] = None,
        clock: Callable[[], int] = epoch_now,
        id_factory: Callable[[], str] = generate_id,
        settings: Optional[NoteVaultConfig] = None,
    ):
        """Initialize the service.

        Args:
            engine: Pre-configured SQLAlchemy engine. Created from the
                configuration (schema included) if None.
            clock: Source of epoch-second timestamps.
            id_factory: Source of note and version ids.
            settings: Configuration; the global ``config`` if None.
        """
        self.settings = settings or config
        self.engine = engine if engine is not None else init_db(
            lock_timeout=self.settings.lock_timeout
        )
        self.session_factory = get_session_factory(self.engine)
        self._clock = clock
        self._id_factory = id_factory

    def _read(self):
        return transaction(self.session_factory, lock_timeout=self.settings.lock_timeout)

    def _write(self):
        return transaction(
            self.session_factory, write=True, lock_timeout=self.settings.lock_timeout
        )

    def _clean_title(self, title: Optional[str]) -> str:
        cleaned = normalize_title(title, self.settings.default_title)
        if len(cleaned) > self.settings.max_title_length:
            raise NoteValidationError(
                f"Title must be at most {self.settings.max_title_length} characters",
                field="title",
                code=ErrorCode.NOTE_TITLE_TOO_LONG,
            )
        return cleaned

    @traced("create_note")
    def create_note(self, owner_id: str, title: Optional[str], body: Optional[str] = "") -> Note:
        """Create a new note.

        Args:
            owner_id: Owner of the note.
            title: Title; trimmed, blank becomes the default title.
            body: Markdown body.

        Returns:
            The created note. created_at and updated_at are equal.

        Raises:
            NoteValidationError: Title longer than the configured maximum.
        """
        now = self._clock()
        note = Note(
            id=self._id_factory(),
            owner_id=owner_id,
            title=self._clean_title(title),
            body=body or "",
            created_at=now,
            updated_at=now,
        )
        with self._write() as session:
            NoteRepository(session).create(note)
        logger.info(f"Created note {note.id}")
        return note

    @traced("get_note")
    def get_note(self, note_id: str, owner_id: str, include_deleted: bool = False) -> Note:
        """Retrieve a note by ID.

        Raises:
            NoteNotFoundError: No such note for this owner (or it is deleted
                and ``include_deleted`` is False).
        """
        with self._read() as session:
            repo = NoteRepository(session)
            note = (
                repo.find_any(note_id, owner_id)
                if include_deleted
                else repo.find_active(note_id, owner_id)
            )
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    @traced("list_notes")
    def list_notes(self, owner_id: str, search: Optional[str] = None) -> List[Note]:
        """All active notes of an owner, most recently changed first."""
        with self._read() as session:
            return NoteRepository(session).list_active(owner_id, search=search)

    @traced("list_notes_page")
    def list_notes_page(
        self,
        owner_id: str,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> NotePage:
        """One page of active notes.

        Args:
            owner_id: Owner of the notes.
            cursor: Token from a previous page. Unreadable tokens are ignored
                and the listing starts over from the first page.
            page_size: Requested size; clamped to the configured bounds.
        """
        size = self.settings.clamp_page_size(page_size)
        with self._read() as session:
            return NoteRepository(session).list_page(
                owner_id, PageCursor.decode(cursor), size
            )

    @traced("update_note")
    def update_note(
        self,
        note_id: str,
        owner_id: str,
        title: Optional[str],
        body: Optional[str] = "",
    ) -> Note:
        """Replace the title and body of an active note.

        The previous content is recorded as an ``update`` version first.

        Raises:
            NoteNotFoundError: The note is absent, deleted or not the owner's.
            NoteValidationError: Title longer than the configured maximum.
            ContentionError: The note stayed locked past the lock timeout.
        """
        clean_title = self._clean_title(title)
        with self._write() as session:
            notes = NoteRepository(session)
            current = notes.find_active_for_update(note_id, owner_id)
            if current is None:
                raise NoteNotFoundError(note_id)
            now = self._clock()

            version = VersionRepository(session, self._id_factory).snapshot(
                current, VersionEvent.UPDATE, now
            )
            updated = current.model_copy(
                update={"title": clean_title, "body": body or "", "updated_at": now}
            )
            if notes.update(updated) == 0:
                raise NoteNotFoundError(note_id)
        logger.info(f"Updated note {note_id} (snapshot #{version.sequence})")
        return updated

    @traced("delete_note")
    def delete_note(self, note_id: str, owner_id: str) -> None:
        """Soft-delete an active note.

        The content at deletion time is recorded as a ``delete`` version, so
        the note can be brought back with :meth:`rollback_note`. Deleting a
        note that is already deleted raises NoteNotFoundError and writes
        nothing.
        """
        with self._write() as session:
            notes = NoteRepository(session)
            current = notes.find_active_for_update(note_id, owner_id)
            if current is None:
                raise NoteNotFoundError(note_id)
            now = self._clock()

            version = VersionRepository(session, self._id_factory).snapshot(
                current, VersionEvent.DELETE, now
            )
            if notes.soft_delete(note_id, owner_id, now) == 0:
                raise NoteNotFoundError(note_id)
        logger.info(f"Deleted note {note_id} (snapshot #{version.sequence})")

    @traced("list_history")
    def list_history(
        self, note_id: str, owner_id: str, limit: Optional[int] = None
    ) -> List[NoteVersion]:
        """Versions of a note, newest first. Works for deleted notes too."""
        size = self.settings.clamp_history_limit(limit)
        with self._read() as session:
            if NoteRepository(session).find_any(note_id, owner_id) is None:
                raise NoteNotFoundError(note_id)
            return VersionRepository(session).list_by_note(note_id, owner_id, size)

    @traced("get_version")
    def get_version(self, version_id: str, note_id: str, owner_id: str) -> NoteVersion:
        """A single version of a note.

        Raises:
            VersionNotFoundError: No such version for this note and owner.
        """
        with self._read() as session:
            version = VersionRepository(session).find_by_id(
                version_id, note_id, owner_id
            )
        if version is None:
            raise VersionNotFoundError(version_id, note_id)
        return version

    @traced("rollback_note")
    def rollback_note(self, note_id: str, owner_id: str, version_id: str) -> Note:
        """Restore the content of a note to an earlier version.

        The content being replaced is itself recorded as a ``rollback``
        version, so a rollback can be undone. Rolling back a deleted note
        restores it.

        Raises:
            NoteNotFoundError: No such note for this owner.
            VersionNotFoundError: The version does not belong to this note.
        """
        with self._write() as session:
            notes = NoteRepository(session)
            versions = VersionRepository(session, self._id_factory)

            current = notes.find_any_for_update(note_id, owner_id)
            if current is None:
                raise NoteNotFoundError(note_id)
            target = versions.find_by_id(version_id, note_id, owner_id)
            if target is None:
                raise VersionNotFoundError(version_id, note_id)
            now = self._clock()

            snapshot = versions.snapshot(current, VersionEvent.ROLLBACK, now)
            restored = current.model_copy(
                update={
                    "title": normalize_title(target.title, self.settings.default_title),
                    "body": target.body,
                    "updated_at": now,
                    "deleted_at": None,
                }
            )
            if current.is_deleted:
                affected = notes.restore(restored)
            else:
                affected = notes.update(restored)
            if affected == 0:
                raise NoteNotFoundError(note_id)
        logger.info(
            f"Rolled back note {note_id} to version {version_id} "
            f"(#{target.sequence}, snapshot #{snapshot.sequence}"
            f"{', restored' if current.is_deleted else ''})"
        )
        return restored

    @traced("export_note")
    def export_note(self, note_id: str, owner_id: str) -> NoteExport:
        """Render an active note as a markdown download."""
        note = self.get_note(note_id, owner_id)
        return NoteExport(filename=export_filename(note.title), content=note.body)
