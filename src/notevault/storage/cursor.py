"""Opaque cursor tokens for keyset pagination over notes.

A cursor records the sort key ``(updated_at, id)`` of the last note on a page.
The next page is everything strictly after it in ``(updated_at DESC, id DESC)``
order, so inserts and deletes elsewhere in the collection never shift pages
the way offsets do.

The token is ``base64(f"{updated_at}:{id}")``. Callers must treat it as
opaque. Decoding is forgiving: a stale, truncated or tampered token yields
``None`` and the listing restarts from the first page.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_SEPARATOR = ":"


@dataclass(frozen=True)
class PageCursor:
    """Sort key of the last item of a page."""

    updated_at: int
    note_id: str

    def encode(self) -> str:
        """Serialize to the transport-safe token handed to callers."""
        raw = f"{self.updated_at}{_SEPARATOR}{self.note_id}"
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, token: Optional[str]) -> Optional["PageCursor"]:
        """Parse a token produced by :meth:`encode`.

        Returns:
            The cursor, or None when the token is empty or malformed.
            Never raises.
        """
        if not token:
            return None
        try:
            raw = base64.b64decode(token, validate=True).decode("utf-8")
            updated_at, note_id = raw.split(_SEPARATOR, 1)
            cursor = cls(updated_at=int(updated_at), note_id=note_id)
        except (binascii.Error, UnicodeDecodeError, ValueError, TypeError) as e:
            logger.debug(f"Ignoring malformed cursor: {e}")
            return None
        if not cursor.note_id:
            return None
        return cursor
