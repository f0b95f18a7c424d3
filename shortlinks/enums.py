"""Shared enums for the shortlinks service.

Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "RedirectOutcome"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Outcome labels for request metrics."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ERROR = "error"


class RedirectOutcome(StrEnum):
    """Terminal outcomes of resolving a short code."""

    REDIRECT = "redirect"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"
