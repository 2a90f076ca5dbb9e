"""Typed exceptions raised by the tariff and approval engine.

Every exception carries a machine-readable ``code`` and the structured data
needed to render a precise message (entry id, attempted action, current
state). Callers catch by type, never by message text.

    EngineError
    +-- ValidationError
    +-- EntryNotFoundError
    +-- PermissionDeniedError
    +-- TariffError
    |   +-- TariffNotFoundError
    |   +-- TariffLockedError
    +-- LifecycleError
    |   +-- InvalidTransitionError
    |   +-- MissingCommentError
    |   +-- NotEditableError
    +-- ConcurrentModificationError   (retryable)
    +-- StorageUnavailableError       (retryable)
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for all engine errors."""

    code: str = "ENGINE_ERROR"
    retryable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": str(self)}


class ValidationError(EngineError):
    """Malformed or out-of-range input, rejected before any state change."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Invalid {field}: {message}")


class EntryNotFoundError(EngineError):
    """Raised when an entry id does not exist in the store."""

    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} not found")


class PermissionDeniedError(EngineError):
    """Raised when the actor may not perform the requested operation."""

    code = "PERMISSION_DENIED"

    def __init__(self, target: str, action: str, actor_id: str, reason: str):
        self.target = target
        self.action = action
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(
            f"Actor {actor_id} may not {action} {target}: {reason}"
        )


class TariffError(EngineError):
    """Base class for tariff errors."""

    code = "TARIFF_ERROR"


class TariffNotFoundError(TariffError):
    """No tariff configured for the rate code and year.

    Surfaced explicitly: a silent zero is indistinguishable from a
    correctly configured free rate.
    """

    code = "TARIFF_NOT_FOUND"

    def __init__(self, rate_code: str | None, year: int, user_id: str | None = None):
        self.rate_code = rate_code
        self.year = year
        self.user_id = user_id
        if rate_code is None:
            msg = f"No tariffs configured for {year}"
        else:
            msg = f"No tariff configured for '{rate_code}' in {year}"
        super().__init__(msg)


class TariffLockedError(TariffError):
    """Raised when writing to the tariff table of an elapsed year."""

    code = "TARIFF_LOCKED"

    def __init__(self, year: int, current_year: int):
        self.year = year
        self.current_year = current_year
        super().__init__(
            f"Tariffs for {year} are read-only (current year is {current_year})"
        )


class LifecycleError(EngineError):
    """Base class for approval lifecycle violations."""

    code = "LIFECYCLE_ERROR"

    def __init__(self, entry_id: str | None, action: str, state: str, message: str):
        self.entry_id = entry_id
        self.action = action
        self.state = state
        super().__init__(message)


class InvalidTransitionError(LifecycleError):
    """Raised when no transition edge matches the entry's current state."""

    code = "INVALID_TRANSITION"

    def __init__(self, entry_id: str | None, action: str, state: str):
        super().__init__(
            entry_id,
            action,
            state,
            f"Cannot '{action}' entry {entry_id} in state '{state}'",
        )


class MissingCommentError(LifecycleError):
    """Raised when a transition that requires a comment has none."""

    code = "MISSING_COMMENT"

    def __init__(self, entry_id: str | None, action: str, state: str):
        super().__init__(
            entry_id,
            action,
            state,
            f"A comment is required to '{action}' entry {entry_id}",
        )


class NotEditableError(LifecycleError):
    """Raised when editing or deleting an entry outside the allowed states."""

    code = "NOT_EDITABLE"

    def __init__(self, entry_id: str | None, action: str, state: str):
        super().__init__(
            entry_id,
            action,
            state,
            f"Entry {entry_id} does not allow '{action}' in state '{state}'",
        )


class ConcurrentModificationError(EngineError):
    """Lost a compare-and-swap race; the caller may reload and retry."""

    code = "CONCURRENT_MODIFICATION"
    retryable = True

    def __init__(self, entry_id: str, expected_version: int):
        self.entry_id = entry_id
        self.expected_version = expected_version
        super().__init__(
            f"Entry {entry_id} changed since version {expected_version}"
        )


class StorageUnavailableError(EngineError):
    """The persistence layer failed; the caller owns any retry."""

    code = "STORAGE_UNAVAILABLE"
    retryable = True

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        msg = f"Storage unavailable during {operation}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
