"""Custom exceptions for NoteVault.

Provides a structured exception hierarchy with error codes and
machine-readable error information. The note engine only ever signals the
abstract kinds below; mapping them to transport responses is the caller's job.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_VALIDATION_FAILED = 1002
    NOTE_ALREADY_EXISTS = 1003
    NOTE_TITLE_TOO_LONG = 1006

    # Version errors (11xx)
    VERSION_NOT_FOUND = 1101

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_CONNECTION_FAILED = 4004
    LOCK_CONTENTION = 4008

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001
    CONFIG_MISSING = 6002

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001

    # Principal errors (8xxx)
    UNAUTHENTICATED = 8001


class NoteVaultError(Exception):
    """Base exception for all NoteVault errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NotFoundError(NoteVaultError):
    """Raised when a note or version is absent or owned by someone else.

    Owner mismatch is reported exactly like absence so callers cannot probe
    for the existence of other owners' data. The owner id is therefore never
    part of ``details``.
    """


class NoteNotFoundError(NotFoundError):
    """Raised when a note cannot be found."""

    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID '{note_id}' not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class VersionNotFoundError(NotFoundError):
    """Raised when a version cannot be found for the given note."""

    def __init__(self, version_id: str, note_id: str):
        super().__init__(
            f"Version '{version_id}' not found for note '{note_id}'",
            code=ErrorCode.VERSION_NOT_FOUND,
            details={"version_id": version_id, "note_id": note_id}
        )
        self.version_id = version_id
        self.note_id = note_id


class NoteConflictError(NoteVaultError):
    """Raised when a note is created with an identifier that already exists."""

    def __init__(self, note_id: str, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {"note_id": note_id}
        if original_error:
            details["original_error"] = str(original_error)[:200]
        super().__init__(
            f"Note with ID '{note_id}' already exists",
            code=ErrorCode.NOTE_ALREADY_EXISTS,
            details=details
        )
        self.note_id = note_id
        self.original_error = original_error


class ContentionError(NoteVaultError):
    """Raised when the write lock on a note cannot be acquired in time.

    Nothing was written; the operation can be retried as-is.
    """

    retryable = True

    def __init__(
        self,
        message: str = "Note is locked by a concurrent writer",
        note_id: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {}
        if note_id:
            details["note_id"] = note_id
        if original_error:
            details["original_error"] = str(original_error)[:200]
        super().__init__(message, code=ErrorCode.LOCK_CONTENTION, details=details)
        self.note_id = note_id
        self.original_error = original_error


class NoteValidationError(NoteVaultError):
    """Raised when note data fails validation."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.NOTE_VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]  # Truncate for safety

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class StorageError(NoteVaultError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.original_error = original_error


class ConfigurationError(NoteVaultError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key


class AuthenticationError(NoteVaultError):
    """Raised when no owner can be resolved for a request."""

    def __init__(self, message: str = "No authenticated owner for this request"):
        super().__init__(message, code=ErrorCode.UNAUTHENTICATED)
