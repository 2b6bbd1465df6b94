"""topnote Error Hierarchy.

Provides a structured error hierarchy for editor and persistence operations:
- TopnoteError: Base exception for all application errors
- RangeError: Invalid document position, range, or selection
- ValidationError: Invalid arguments (unknown kind, bad heading level, ...)
- StoreError: Document store I/O failure (network, permission, conflict)
- PersistenceError: A share-state write could not be persisted
- NotFoundError: A share token does not resolve to a public note

Each error type includes:
- Descriptive message
- Recoverable flag (store failures can be attempted again later)
- Context dict for debugging
- Structured representation for callers that surface notices

Usage:
    from topnote.errors import RangeError, StoreError

    if not 0 <= index < len(leaves):
        raise RangeError("Block index out of range", position=position)
"""

from __future__ import annotations

from typing import Any


class TopnoteError(Exception):
    """Base exception for all topnote errors.

    Attributes:
        message: Human-readable error description
        recoverable: Whether the operation can be attempted again
        context: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured dictionary for user-visible notices."""
        return {
            "type": type(self).__name__.lower().replace("error", ""),
            "message": self.message,
            "recoverable": self.recoverable,
            **{k: v for k, v in self.context.items() if v is not None},
        }


# =============================================================================
# Document Errors
# =============================================================================


class RangeError(TopnoteError):
    """A document position, range or selection does not exist.

    Raised before any mutation is applied; the document is left unchanged.

    Example:
        raise RangeError("Offset past end of block", position=(2, 40))
    """

    def __init__(
        self,
        message: str,
        *,
        position: Any = None,
        end: Any = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if position is not None:
            context["position"] = tuple(position)
        if end is not None:
            context["end"] = tuple(end)
        super().__init__(message, recoverable=False, context=context)
        self.position = position
        self.end = end


class ValidationError(TopnoteError):
    """Input validation failed.

    Example:
        raise ValidationError("Heading level must be 1-3", field="level", value=7)
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = _truncate(str(value), 100)
        super().__init__(message, recoverable=False, context=context)
        self.field = field


# =============================================================================
# Persistence Errors
# =============================================================================


class StoreError(TopnoteError):
    """Document store operation failed."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        note_id: str | None = None,
        status_code: int | None = None,
        recoverable: bool = True,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if operation:
            context["operation"] = operation
        if note_id:
            context["note_id"] = note_id
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, recoverable=recoverable, context=context)
        self.operation = operation
        self.note_id = note_id
        self.status_code = status_code


class PersistenceError(StoreError):
    """Share state could not be written; the prior server state persists."""


class NotFoundError(TopnoteError):
    """Share token does not resolve to a public note."""

    def __init__(self, message: str = "Note not found", *, token: str | None = None) -> None:
        # Tokens are capabilities; only a prefix goes into the context.
        super().__init__(
            message,
            recoverable=False,
            context={"token_prefix": token[:6] if token else None},
        )


def _truncate(s: str, max_len: int) -> str:
    """Truncate string with ellipsis."""
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."
