"""Configuration module for NoteVault."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from notevault import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, lives alongside the default database
_USER_ENV = Path.home() / ".notevault" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NoteVaultConfig(BaseModel):
    """Configuration for the NoteVault engine and server."""

    # Base directory for relative paths
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEVAULT_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEVAULT_DATABASE_PATH", "data/db/notevault.db")
        )
    )
    # Full SQLAlchemy URL; overrides database_path when set (e.g. PostgreSQL)
    database_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("NOTEVAULT_DATABASE_URL") or None
    )
    # In-memory SQLite, mostly for throwaway sessions and tests
    in_memory_db: bool = Field(
        default_factory=lambda: _env_flag("NOTEVAULT_IN_MEMORY_DB", "false")
    )
    # Seconds a writer waits for the note write lock before ContentionError
    lock_timeout: float = Field(
        default_factory=lambda: float(os.getenv("NOTEVAULT_LOCK_TIMEOUT", "5.0"))
    )
    # Pagination
    default_page_size: int = Field(
        default_factory=lambda: int(os.getenv("NOTEVAULT_PAGE_SIZE", "20"))
    )
    max_page_size: int = Field(
        default_factory=lambda: int(os.getenv("NOTEVAULT_MAX_PAGE_SIZE", "100"))
    )
    # Number of versions returned by a history listing when no limit is given
    history_limit: int = Field(
        default_factory=lambda: int(os.getenv("NOTEVAULT_HISTORY_LIMIT", "100"))
    )
    max_title_length: int = Field(default=500)
    default_title: str = Field(default="Untitled")
    # Owner every MCP tool call acts as
    owner_id: Optional[str] = Field(
        default_factory=lambda: os.getenv("NOTEVAULT_OWNER_ID") or None
    )
    # Server configuration
    server_name: str = Field(
        default_factory=lambda: os.getenv("NOTEVAULT_SERVER_NAME", "notevault")
    )
    server_version: str = Field(default=__version__)
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEVAULT_LOG_DIR"))
            if os.getenv("NOTEVAULT_LOG_DIR")
            else None
        )
    )

    model_config = {"validate_assignment": True}

    @model_validator(mode="after")
    def _validate_limits(self) -> "NoteVaultConfig":
        """Reject sizes and timeouts that would make listings or locking unusable."""
        if self.lock_timeout <= 0:
            raise ValueError("lock_timeout must be > 0")
        if self.default_page_size < 1:
            raise ValueError("default_page_size must be >= 1")
        if self.max_page_size < self.default_page_size:
            raise ValueError("max_page_size must be >= default_page_size")
        if self.history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        if self.max_title_length < 1:
            raise ValueError("max_title_length must be >= 1")
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL.

        ``database_url`` wins when set; otherwise a SQLite file under
        ``database_path`` (created on demand) or an in-memory database.
        """
        if self.database_url:
            return self.database_url
        if self.in_memory_db:
            return "sqlite://"
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"

    def clamp_page_size(self, page_size: Optional[int]) -> int:
        """Apply the default for missing/non-positive sizes and cap at the maximum."""
        if page_size is None or page_size < 1:
            return self.default_page_size
        return min(page_size, self.max_page_size)

    def clamp_history_limit(self, limit: Optional[int]) -> int:
        """Same rule as page sizes, with ``history_limit`` as the default."""
        if limit is None or limit < 1:
            return self.history_limit
        return min(limit, max(self.max_page_size, self.history_limit))


# Create a global config instance
config = NoteVaultConfig()
