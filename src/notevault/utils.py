"""Utility functions for NoteVault."""

import re

_NON_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9]+")

MAX_EXPORT_BASENAME = 80


def export_filename(title: str) -> str:
    """Build a download-safe markdown filename from a note title.

    Converts the title to a name that:
    - Contains only ASCII letters, digits and single hyphens
    - Never starts or ends with a hyphen
    - Is at most 80 characters before the ``.md`` suffix

    Examples:
        "Shopping list" -> "Shopping-list.md"
        "  Q3: plan / draft  " -> "Q3-plan-draft.md"
        "???" -> "note.md"

    Args:
        title: The note title.

    Returns:
        Filename ending in ``.md``.
    """
    base = (title or "").strip() or "note"
    base = _NON_FILENAME_CHARS.sub("-", base).strip("-")
    if not base:
        base = "note"
    return base[:MAX_EXPORT_BASENAME] + ".md"


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Prevents SQL LIKE pattern injection where user input containing
    '%' or '_' could match unintended patterns.

    Args:
        value: User input string that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for safe use in LIKE clauses

    Example:
        >>> escape_like_pattern("100% complete")
        '100\\% complete'
        >>> escape_like_pattern("file_name")
        'file\\_name'
    """
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)
