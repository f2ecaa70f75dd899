"""Link lifecycle manager - creation, resolution and expiry of short links.

The manager orchestrates the durable record store (source of truth) and the
cache (non-authoritative accelerator). It holds no state between calls; every
collaborator is passed in explicitly so tests can substitute in-memory fakes.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────┐
    │              LinkLifecycleManager              │
    │  • create / create_share_link (dedup, retry)   │
    │  • resolve / exists (cache-first, lazy expiry) │
    │  • sweep / purge / delete                      │
    └──────────────────────────────────────────────┘
              │                          │
              ▼                          ▼
    ┌─────────────────┐        ┌─────────────────┐
    │   RecordStore   │        │   RecordCache   │
    │ (durable, PK on │        │ (TTL <= record  │
    │   short_path)   │        │    expiry)      │
    └─────────────────┘        └─────────────────┘

Create Flow
-----------
::
    ┌─────────────┐
    │ Validate URL│──── bad ──▶ InvalidInputError
    │ path, expiry│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Live record │──── yes ─▶ refresh cache, return (is_existing=True)
    │ for URL?    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Candidate   │  caller path, or nanoid from the alphabet
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Slot free?  │──── live occupant ─▶ Conflict / next candidate
    │             │──── expired ───────▶ delete occupant, continue
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Insert      │──── DuplicateKey ──▶ Conflict / next candidate
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Fill cache  │  failures logged and swallowed
    └─────────────┘

Resolve Flow
------------
::
    cache hit  ── live ──▶ return
               └ expired ─▶ evict cache entry, continue as a miss
    cache miss ─▶ store ── absent ──▶ None
                         ├ expired ──▶ delete (store + cache), None
                         └ live ─────▶ backfill cache, return

Key Behaviours
===============
- A record is live iff ``expires_at`` is None or ``expires_at > now``.
- Durable store failures always propagate as ``StoreUnavailableError``.
- Cache reads that fail degrade to a miss; cache fills that fail are logged.
- Cache deletes that accompany a durable delete propagate.
- Only short path collisions are retried, at most ``max_attempts`` times.
- The sweep only issues one bulk delete against the durable store.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from prometheus_client import Counter

from shortlinks.cache import RecordCache
from shortlinks.config import Settings
from shortlinks.enums import CreateOutcome, Expiration, ResolveOutcome
from shortlinks.exceptions import (
    ConflictError,
    DuplicateKeyError,
    ExhaustedRetriesError,
    InvalidInputError,
    ShortLinkError,
    StoreUnavailableError,
)
from shortlinks.identifiers import (
    DEFAULT_ALPHABET,
    DEFAULT_LENGTH,
    generate_short_path,
    is_well_formed_short_path,
    normalize_url,
    validate_original_url,
)
from shortlinks.schemas import LinkRecord
from shortlinks.store import RecordStore

__all__ = ["CreatedLink", "LinkLifecycleManager", "now_ms"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATE_REQUESTS_TOTAL = Counter(
    "shortlinks_create_requests_total",
    "Link creation requests by outcome",
    ["outcome"],
)
LINK_RESOLVE_REQUESTS_TOTAL = Counter(
    "shortlinks_resolve_requests_total",
    "Link resolve requests by outcome",
    ["outcome"],
)
LINK_SWEPT_TOTAL = Counter(
    "shortlinks_swept_records_total",
    "Expired records removed by the periodic sweep",
)
CACHE_FAILURES_TOTAL = Counter(
    "shortlinks_cache_failures_total",
    "Cache operations that failed and were degraded",
    ["operation"],
)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CreatedLink:
    record: LinkRecord
    is_existing: bool


class LinkLifecycleManager:
    """Create, resolve and expire short links across the store and the cache.

    Example:
        >>> manager = LinkLifecycleManager(store, cache)
        >>> created = await manager.create("https://example.com/a", "te4t", "7d", now=1_000_000)
        >>> created.record.expires_at
        605800000
        >>> await manager.resolve("te4t", now=1_000_001)
        LinkRecord(short_path='te4t', ...)
    """

    def __init__(
        self,
        store: RecordStore,
        cache: RecordCache,
        *,
        short_path_length: int = DEFAULT_LENGTH,
        alphabet: str = DEFAULT_ALPHABET,
        max_attempts: int = 6,
        default_expiration: Expiration = Expiration.FOREVER,
        share_link_default_expiration: Expiration = Expiration.SEVEN_DAYS,
        clock: Callable[[], int] = now_ms,
        path_generator: Callable[[], str] | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        assert max_attempts > 0, f"max_attempts must be positive, got {max_attempts!r}"
        self._store = store
        self._cache = cache
        self._short_path_length = short_path_length
        self._max_attempts = max_attempts
        self._default_expiration = default_expiration
        self._share_link_default_expiration = share_link_default_expiration
        self._clock = clock
        self._generate = path_generator or (lambda: generate_short_path(short_path_length, alphabet))
        self._logger = logger or logging.getLogger("shortlinks")

    @classmethod
    def from_settings(
        cls,
        store: RecordStore,
        cache: RecordCache,
        settings: Settings,
        logger: logging.Logger | None = None,
    ) -> "LinkLifecycleManager":
        return cls(
            store,
            cache,
            short_path_length=settings.SHORT_PATH_LENGTH,
            alphabet=settings.SHORT_PATH_ALPHABET,
            max_attempts=settings.CREATE_MAX_ATTEMPTS,
            default_expiration=Expiration(settings.DEFAULT_EXPIRATION),
            share_link_default_expiration=Expiration(settings.SHARE_LINK_DEFAULT_EXPIRATION),
            logger=logger,
        )

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def cache(self) -> RecordCache:
        return self._cache

    @property
    def short_path_length(self) -> int:
        return self._short_path_length

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create(
        self,
        url: str | None,
        short_path: str | None = None,
        expiration: str | Expiration | None = None,
        now: int | None = None,
    ) -> CreatedLink:
        """Create a mapping, or return the live mapping that already exists for ``url``.

        Args:
            url: Absolute http/https URL to shorten.
            short_path: Caller-supplied short path; generated when None.
            expiration: "12h", "7d" or "forever"; the configured default when None.
            now: Evaluation time in epoch milliseconds; the clock when None.

        Returns:
            CreatedLink: The record and whether it was reused.

        Raises:
            InvalidInputError: Malformed URL, wrong-length path or unknown expiration.
            ConflictError: The caller-supplied path is held by a live record.
            ExhaustedRetriesError: No free generated path within the attempt bound.
            StoreUnavailableError: The durable store failed.
        """
        now = self._now(now)
        try:
            original_url = validate_original_url(url)
            chosen = self._parse_expiration(expiration, self._default_expiration)
            if short_path is not None:
                short_path = short_path.strip()
                if not is_well_formed_short_path(short_path, self._short_path_length):
                    raise InvalidInputError(f"Short path must be exactly {self._short_path_length} characters")

            existing = await self._store.find_live_by_original_url(original_url, now)
            if existing is not None:
                self._logger.info(f"Reusing live short path {existing.short_path} for {original_url}")
                await self._fill_cache(existing, now)
                LINK_CREATE_REQUESTS_TOTAL.labels(outcome=CreateOutcome.EXISTING).inc()
                return CreatedLink(record=existing, is_existing=True)

            expires_at = chosen.expires_at(now)
            if short_path is not None:
                record = await self._claim_requested(short_path, original_url, now, expires_at)
            else:
                record = await self._claim_generated(original_url, now, expires_at)
        except ShortLinkError as exc:
            LINK_CREATE_REQUESTS_TOTAL.labels(outcome=_create_outcome_for(exc)).inc()
            raise

        LINK_CREATE_REQUESTS_TOTAL.labels(outcome=CreateOutcome.CREATED).inc()
        self._logger.info(f"Created short path {record.short_path} for {original_url}")
        return CreatedLink(record=record, is_existing=False)

    async def create_share_link(
        self,
        url: str | None,
        expiration: str | Expiration | None = None,
        now: int | None = None,
    ) -> LinkRecord:
        """Create a fresh, always-expiring link with a generated path.

        Share links skip dedup. A missing or unknown expiration falls back to
        the share link default; "forever" is rejected.
        """
        now = self._now(now)
        try:
            original_url = normalize_url(validate_original_url(url))
            try:
                chosen = Expiration(expiration) if expiration is not None else self._share_link_default_expiration
            except ValueError:
                chosen = self._share_link_default_expiration
            if chosen is Expiration.FOREVER:
                raise InvalidInputError("Share links must include an expiration time")

            record = await self._claim_generated(original_url, now, chosen.expires_at(now))
        except ShortLinkError as exc:
            LINK_CREATE_REQUESTS_TOTAL.labels(outcome=_create_outcome_for(exc)).inc()
            raise

        LINK_CREATE_REQUESTS_TOTAL.labels(outcome=CreateOutcome.CREATED).inc()
        self._logger.info(f"Created share link {record.short_path} for {original_url}")
        return record

    async def resolve(self, short_path: str, now: int | None = None) -> LinkRecord | None:
        """Return the live record for ``short_path``, or None.

        Never-existed, malformed and expired paths are indistinguishable.
        """
        now = self._now(now)
        if not is_well_formed_short_path(short_path, self._short_path_length):
            LINK_RESOLVE_REQUESTS_TOTAL.labels(outcome=ResolveOutcome.NOT_FOUND).inc()
            return None

        cached = await self._read_cache(short_path)
        if cached is not None:
            if cached.is_live(now):
                LINK_RESOLVE_REQUESTS_TOTAL.labels(outcome=ResolveOutcome.CACHE_HIT).inc()
                return cached
            # The snapshot may be stale; the durable row decides.
            await self._cache.delete(short_path)

        record = await self._store.find_by_short_path(short_path)
        if record is None:
            LINK_RESOLVE_REQUESTS_TOTAL.labels(outcome=ResolveOutcome.NOT_FOUND).inc()
            return None

        if not record.is_live(now):
            await self._expire(short_path)
            return None

        await self._fill_cache(record, now)
        LINK_RESOLVE_REQUESTS_TOTAL.labels(outcome=ResolveOutcome.STORE_HIT).inc()
        return record

    async def exists(self, short_path: str, now: int | None = None) -> bool:
        return await self.resolve(short_path, now) is not None

    async def delete(self, short_path: str) -> None:
        """Remove ``short_path`` from the durable store, then from the cache."""
        await self._store.delete(short_path)
        await self._cache.delete(short_path)

    async def sweep(self, now: int | None = None) -> int:
        """Bulk-remove every durably expired record; cache entries expire on their own."""
        now = self._now(now)
        removed = await self._store.delete_all_expired(now)
        if removed:
            LINK_SWEPT_TOTAL.inc(removed)
            self._logger.info(f"Swept {removed} expired records")
        return removed

    async def purge(self) -> int:
        """Remove every record from both stores."""
        removed = await self._store.purge()
        cleared = await self._cache.clear()
        self._logger.warning(f"Purged {removed} records and {cleared} cache entries")
        return removed

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    def _now(self, now: int | None) -> int:
        return self._clock() if now is None else now

    @staticmethod
    def _parse_expiration(value: str | Expiration | None, default: Expiration) -> Expiration:
        if value is None:
            return default
        try:
            return Expiration(value)
        except ValueError:
            allowed = ", ".join(option.value for option in Expiration)
            raise InvalidInputError(f"Expiration must be one of: {allowed}") from None

    async def _claim_requested(self, short_path: str, original_url: str, now: int, expires_at: int | None) -> LinkRecord:
        try:
            return await self._claim(short_path, original_url, now, expires_at)
        except DuplicateKeyError as exc:
            raise ConflictError("Short path already in use") from exc

    async def _claim_generated(self, original_url: str, now: int, expires_at: int | None) -> LinkRecord:
        for attempt in range(1, self._max_attempts + 1):
            candidate = self._generate()
            try:
                return await self._claim(candidate, original_url, now, expires_at)
            except (ConflictError, DuplicateKeyError):
                self._logger.debug(f"Short path {candidate} taken (attempt {attempt}/{self._max_attempts})")

        self._logger.error(f"No free short path after {self._max_attempts} attempts for {original_url}")
        raise ExhaustedRetriesError("Failed to generate a unique short path")

    async def _claim(self, short_path: str, original_url: str, now: int, expires_at: int | None) -> LinkRecord:
        await self._ensure_available(short_path, now)
        record = LinkRecord(
            short_path=short_path,
            original_url=original_url,
            created_at=now,
            expires_at=expires_at,
        )
        await self._store.insert(record)
        await self._fill_cache(record, now)
        return record

    async def _ensure_available(self, short_path: str, now: int) -> None:
        occupant = await self._store.find_by_short_path(short_path)
        if occupant is None:
            return
        if occupant.is_live(now):
            raise ConflictError("Short path already in use")
        self._logger.info(f"Reclaiming expired short path {short_path}")
        await self.delete(short_path)

    async def _expire(self, short_path: str) -> None:
        self._logger.info(f"Short path {short_path} expired, deleting")
        await self.delete(short_path)
        LINK_RESOLVE_REQUESTS_TOTAL.labels(outcome=ResolveOutcome.EXPIRED).inc()

    async def _read_cache(self, short_path: str) -> LinkRecord | None:
        try:
            return await self._cache.get(short_path)
        except StoreUnavailableError as exc:
            CACHE_FAILURES_TOTAL.labels(operation="get").inc()
            self._logger.warning(f"Cache read failed for {short_path}, falling back to store: {exc}")
            return None

    async def _fill_cache(self, record: LinkRecord, now: int) -> None:
        try:
            await self._cache.put(record, now)
        except StoreUnavailableError as exc:
            CACHE_FAILURES_TOTAL.labels(operation="put").inc()
            self._logger.warning(f"Cache fill failed for {record.short_path}: {exc}")


def _create_outcome_for(exc: ShortLinkError) -> CreateOutcome:
    if isinstance(exc, InvalidInputError):
        return CreateOutcome.INVALID
    if isinstance(exc, ConflictError):
        return CreateOutcome.CONFLICT
    if isinstance(exc, ExhaustedRetriesError):
        return CreateOutcome.EXHAUSTED
    return CreateOutcome.ERROR
