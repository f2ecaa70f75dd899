"""Shared enums for the short-links service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "Expiration", "CreateOutcome", "ResolveOutcome"]

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class Expiration(StrEnum):
    """Expiration choices offered at creation time."""

    TWELVE_HOURS = "12h"
    SEVEN_DAYS = "7d"
    FOREVER = "forever"

    @property
    def offset_ms(self) -> int | None:
        return _OFFSETS_MS[self]

    def expires_at(self, now: int) -> int | None:
        """Absolute epoch-millisecond expiry for a record created at ``now``."""
        offset = self.offset_ms
        return None if offset is None else now + offset


_OFFSETS_MS: dict[Expiration, int | None] = {
    Expiration.TWELVE_HOURS: 12 * HOUR_MS,
    Expiration.SEVEN_DAYS: 7 * DAY_MS,
    Expiration.FOREVER: None,
}


class CreateOutcome(StrEnum):
    """Create outcomes for metrics and logging."""

    CREATED = "created"
    EXISTING = "existing"
    INVALID = "invalid"
    CONFLICT = "conflict"
    EXHAUSTED = "exhausted"
    ERROR = "error"


class ResolveOutcome(StrEnum):
    """Resolve outcomes for metrics and logging."""

    CACHE_HIT = "cache_hit"
    STORE_HIT = "store_hit"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
