"""
Error kinds raised by the qcd core.

Every failure the store, resolver, stack or path helpers can report maps to
exactly one ErrorKind. Adapters branch on ``error.kind`` (or on the exception
class) instead of parsing message text.
"""
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    """Closed set of failure kinds."""
    STORAGE_UNAVAILABLE = "storage_unavailable"
    DUPLICATE_IDX = "duplicate_idx"
    DUPLICATE_ALIAS = "duplicate_alias"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    EMPTY_STACK = "empty_stack"
    INVALID_PATH = "invalid_path"
    INVALID_IDX = "invalid_idx"


class QcdError(Exception):
    """
    Base exception for qcd errors.

    Attributes:
        kind: The ErrorKind of this failure
        message: Human readable description
        table: Table the operation targeted, if any
        idx: Offending idx value, if any
        alias: Offending alias value, if any
        directory: Offending directory, if any
        candidates: Aliases that matched an ambiguous query
    """
    kind: Optional[ErrorKind] = None
    default_message = "qcd error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        table: Optional[str] = None,
        idx: Optional[int] = None,
        alias: Optional[str] = None,
        directory: Optional[str] = None,
        candidates: Optional[List[str]] = None,
    ):
        self.message = message or self.default_message
        self.table = table
        self.idx = idx
        self.alias = alias
        self.directory = directory
        self.candidates = candidates or []
        super().__init__(self.message)

    @property
    def context(self) -> Dict[str, Any]:
        """Structured context, without unset fields."""
        fields = {
            "table": self.table,
            "idx": self.idx,
            "alias": self.alias,
            "directory": self.directory,
            "candidates": self.candidates or None,
        }
        return {k: v for k, v in fields.items() if v is not None}

    def __repr__(self):
        kind = self.kind.value if self.kind is not None else None
        return f"<{type(self).__name__}(kind={kind}, message='{self.message}')>"


class StorageUnavailable(QcdError):
    """Raised when the backing store cannot be opened or a statement on it fails."""
    kind = ErrorKind.STORAGE_UNAVAILABLE
    default_message = "Could not open database"


class DuplicateIdx(QcdError):
    """Raised when an idx is already taken."""
    kind = ErrorKind.DUPLICATE_IDX
    default_message = "Idx already exists!"


class DuplicateAlias(QcdError):
    """Raised when a non-empty alias is already taken."""
    kind = ErrorKind.DUPLICATE_ALIAS
    default_message = "Alias already exists!"


class NotFound(QcdError):
    """Raised when no row matches an idx, alias or directory."""
    kind = ErrorKind.NOT_FOUND
    default_message = "Entry not contained in table"


class Ambiguous(QcdError):
    """Raised when an alias prefix matches more than one row."""
    kind = ErrorKind.AMBIGUOUS
    default_message = "Ambiguous alias specification"


class EmptyStack(QcdError):
    """Raised when popping from a session without stack entries."""
    kind = ErrorKind.EMPTY_STACK
    default_message = "Nothing on stack"


class InvalidPath(QcdError):
    """Raised when a path cannot be made absolute or is not valid UTF-8."""
    kind = ErrorKind.INVALID_PATH
    default_message = "Only UTF-8 paths supported"


class InvalidIdx(QcdError):
    """Raised when an idx is outside the unsigned 32-bit range."""
    kind = ErrorKind.INVALID_IDX
    default_message = "Not an idx value"
