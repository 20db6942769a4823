"""Storage layer for NoteVault."""

from notevault.storage.cursor import PageCursor
from notevault.storage.note_repository import NoteRepository
from notevault.storage.transaction import transaction
from notevault.storage.version_repository import VersionRepository

__all__ = [
    "NoteRepository",
    "VersionRepository",
    "PageCursor",
    "transaction",
]
