"""Typed errors raised by the link store, allocator, counter and service.

Routes translate these into HTTP responses; the store translates raw
SQLAlchemy errors into them so callers never see driver exceptions.
"""

__all__ = [
    "LinkError",
    "LinkValidationError",
    "AllocationExhausted",
    "UniqueViolation",
    "RecordNotFound",
    "StorageFault",
]


class LinkError(Exception):
    """Base class for all shortlinks errors."""


class LinkValidationError(LinkError, ValueError):
    """Malformed or missing target URL or identifier."""


class AllocationExhausted(LinkError):
    """No unique short code was found within the retry budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique short code after {attempts} attempts")


class UniqueViolation(LinkError):
    """Insert collided with an existing short code."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Short code '{code}' already exists")


class RecordNotFound(LinkError):
    """No link matches the given id or code."""

    def __init__(self, key: int | str):
        self.key = key
        super().__init__(f"Link not found: {key!r}")


class StorageFault(LinkError):
    """Any other failure reaching the persistent store."""
