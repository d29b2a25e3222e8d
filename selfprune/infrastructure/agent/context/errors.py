"""Error hierarchy for the pruning pipeline.

Most pruning failures are fail-open by contract (malformed suggestions,
tokenizer load errors, storage outages); these exceptions cover the places
where a caller has to be told something went wrong.
"""

from enum import Enum
from typing import Any


class PruneErrorCategory(Enum):
    """Categories of pruning errors."""

    VALIDATION = "validation"  # Rejected operator input
    STORAGE = "storage"  # Durable storage backend failure
    NOT_FOUND = "not_found"  # Unknown archive entry
    INTERNAL = "internal"


class PruneError(Exception):
    """Base exception for pruning errors."""

    def __init__(
        self,
        message: str,
        category: PruneErrorCategory = PruneErrorCategory.INTERNAL,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }

    def __str__(self) -> str:
        return f"[{self.category.value.upper()}] {self.message}"


class PruneConfigError(PruneError, ValueError):
    """Raised when a config update carries out-of-range or unknown values."""

    def __init__(self, message: str, updates: dict[str, Any] | None = None) -> None:
        super().__init__(message, category=PruneErrorCategory.VALIDATION)
        self.updates = updates or {}

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["updates"] = {k: str(v) for k, v in self.updates.items()}
        return data


class StorageBackendError(PruneError):
    """Raised by a single storage backend; the fallback chain absorbs it."""

    def __init__(self, message: str, backend: str, cause: Exception | None = None) -> None:
        super().__init__(message, category=PruneErrorCategory.STORAGE, cause=cause)
        self.backend = backend


class ArchiveEntryNotFound(PruneError):
    """Raised by the HTTP layer when restoring an id that is not archived."""

    def __init__(self, message_id: str) -> None:
        super().__init__(
            f"No archived message with id {message_id}", category=PruneErrorCategory.NOT_FOUND
        )
        self.message_id = message_id
