"""Tests for utility functions and principal resolution."""
import pytest

from notevault.exceptions import AuthenticationError
from notevault.server.principal import PrincipalResolver
from notevault.utils import escape_like_pattern, export_filename


class TestExportFilename:
    """Tests for export_filename."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Shopping list", "Shopping-list.md"),
            ("  Q3: plan / draft  ", "Q3-plan-draft.md"),
            ("--already-dashed--", "already-dashed.md"),
            ("Café crème", "Caf-cr-me.md"),
            ("???", "note.md"),
            ("", "note.md"),
            ("   ", "note.md"),
        ],
    )
    def test_slug(self, title, expected):
        assert export_filename(title) == expected

    def test_long_title_is_cut(self):
        name = export_filename("a" * 200)
        assert name == "a" * 80 + ".md"


class TestEscapeLikePattern:
    """Tests for escape_like_pattern."""

    def test_wildcards(self):
        assert escape_like_pattern("100% complete") == "100\\% complete"
        assert escape_like_pattern("file_name") == "file\\_name"

    def test_backslash_first(self):
        assert escape_like_pattern("a\\%") == "a\\\\\\%"

    def test_plain_text_unchanged(self):
        assert escape_like_pattern("groceries") == "groceries"


class TestPrincipalResolver:
    """Tests for PrincipalResolver."""

    def test_configured_owner(self):
        assert PrincipalResolver("alice").resolve() == "alice"
        assert PrincipalResolver("  alice ").resolve() == "alice"

    def test_no_owner(self):
        with pytest.raises(AuthenticationError):
            PrincipalResolver().resolve()
        with pytest.raises(AuthenticationError):
            PrincipalResolver("  ").resolve()
