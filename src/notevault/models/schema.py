"""Data models for NoteVault."""

import secrets
import threading
import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

# Crockford base32, the ULID alphabet (no I, L, O, U)
_ULID_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ULID_TIME_LEN = 10
_ULID_RANDOM_LEN = 16
_ULID_RANDOM_MAX = (1 << 80) - 1


def epoch_now() -> int:
    """Current time as whole epoch seconds (the engine's clock)."""
    return int(time.time())


def _encode_base32(value: int, length: int) -> str:
    chars = []
    for _ in range(length):
        chars.append(_ULID_ALPHABET[value & 0x1F])
        value >>= 5
    return "".join(reversed(chars))


# Thread-safe monotonic state so ids minted in the same millisecond still sort
# in creation order
_id_lock = threading.Lock()
_last_ms = 0
_last_random = 0


def generate_id() -> str:
    """Generate a ULID: 26 characters, lexicographically sortable by creation time.

    Returns:
        A string of 10 timestamp characters (48-bit milliseconds) followed by
        16 random characters (80 bits), both Crockford base32.

    Within a single millisecond the random component is incremented instead
    of redrawn, so ids generated by one process are strictly increasing and
    "order by id" is a valid tiebreak consistent with creation order.
    """
    global _last_ms, _last_random

    with _id_lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms <= _last_ms:
            # Same (or backwards) millisecond: stay on the last timestamp
            now_ms = _last_ms
            if _last_random >= _ULID_RANDOM_MAX:
                now_ms += 1
                _last_random = secrets.randbits(79)
            else:
                _last_random += 1
        else:
            # Leave headroom so increments within this millisecond never overflow
            _last_random = secrets.randbits(79)
        _last_ms = now_ms

        return _encode_base32(now_ms, _ULID_TIME_LEN) + _encode_base32(
            _last_random, _ULID_RANDOM_LEN
        )


def normalize_title(title: Optional[str], default: str = "Untitled") -> str:
    """Trim a title and fall back to ``default`` when nothing is left."""
    stripped = (title or "").strip()
    return stripped or default


class VersionEvent(str, Enum):
    """The operation that caused a snapshot to be written."""

    UPDATE = "update"
    DELETE = "delete"
    ROLLBACK = "rollback"


class Note(BaseModel):
    """The current state of a note."""

    id: str = Field(default_factory=generate_id, description="ULID of the note")
    owner_id: str = Field(..., description="Owner; never changes after creation")
    title: str = Field(..., description="Title of the note")
    body: str = Field(default="", description="Markdown body of the note")
    created_at: int = Field(..., description="Creation time, epoch seconds")
    updated_at: int = Field(..., description="Last content change, epoch seconds")
    deleted_at: Optional[int] = Field(
        default=None, description="Soft-delete time, epoch seconds"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("owner_id")
    @classmethod
    def validate_owner_id(cls, v: str) -> str:
        """Validate that the owner is not empty."""
        if not v or not v.strip():
            raise ValueError("Owner ID cannot be empty")
        return v

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class NoteVersion(BaseModel):
    """An immutable snapshot of a note taken just before it changed."""

    id: str = Field(default_factory=generate_id, description="ULID of the version")
    note_id: str
    owner_id: str
    sequence: int = Field(..., ge=1, description="Per-note, starts at 1")
    title: str
    body: str
    source_updated_at: int = Field(
        ..., description="The note's updated_at when the snapshot was taken"
    )
    created_at: int = Field(..., description="When the snapshot was written")
    event: VersionEvent

    model_config = {"extra": "forbid", "frozen": True}


class NotePage(BaseModel):
    """One page of a cursor-paginated listing."""

    items: List[Note] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(
        default=None, description="Opaque token for the next page; None at the end"
    )

    model_config = {"frozen": True}

    def __len__(self) -> int:
        return len(self.items)


class NoteExport(BaseModel):
    """A note rendered as a downloadable markdown file."""

    filename: str
    content: str
    media_type: str = "text/markdown; charset=utf-8"

    model_config = {"frozen": True}
