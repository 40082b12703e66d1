"""Shared enums for the URL shortener service.

This module defines all status and outcome enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "CacheStatus", "CreateOutcome"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"


class RequestStatus(StrEnum):
    """Outcome labels for request metrics."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Fast cache lookup result labels."""

    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"
    DISABLED = "disabled"


class CreateOutcome(StrEnum):
    """What the authoritative store did with an insert-if-absent request.

    Both outcomes are successes; the HTTP response does not distinguish them.
    """

    INSERTED = "inserted"
    CONFLICT_ABSORBED = "conflict_absorbed"
