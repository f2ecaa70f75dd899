"""Service container and FastAPI dependency functions.

The ``ServiceManager`` builds every shared resource once at startup (logger,
database engine, Redis client, store and cache adapters, lifecycle manager and
sweeper) and is attached to ``app.state``. Route handlers reach it only through
the dependency functions below, so tests can override them with fakes.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request

from shortlinks.cache import RedisRecordCache
from shortlinks.config import Settings, get_settings
from shortlinks.database import build_engine, build_session_factory, close_db, init_db
from shortlinks.lifecycle import LinkLifecycleManager
from shortlinks.redis import build_redis, close_redis
from shortlinks.store import SQLRecordStore
from shortlinks.sweeper import ExpiredLinkSweeper

__all__ = [
    "ServiceManager",
    "RequestContext",
    "get_service_manager",
    "get_lifecycle_manager",
    "get_request_context",
    "schedule_sweep",
]


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Owner of the shared resources of one process.

    Resources are created in ``initialize`` and released in ``cleanup``.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        self.engine = build_engine(self.settings.DATABASE_URL, echo=self.settings.DATABASE_ECHO)
        await init_db(self.engine)
        self.redis_client = build_redis(self.settings.REDIS_URL)

        self.store = SQLRecordStore(build_session_factory(self.engine))
        self.cache = RedisRecordCache(self.redis_client, key_prefix=self.settings.CACHE_KEY_PREFIX)
        self.lifecycle = LinkLifecycleManager.from_settings(self.store, self.cache, self.settings, self.logger)
        self.sweeper = ExpiredLinkSweeper(
            self.lifecycle,
            self.settings.SWEEP_INTERVAL_SECONDS,
            self.logger,
        )
        self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortlinks")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if not self._initialized:
            return
        await self.sweeper.stop()
        await close_redis(self.redis_client)
        await close_db(self.engine)
        self._initialized = False


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request identifiers and timing for structured logging.

    Attributes:
        request_id: Unique identifier for this request
        client_ip: Client IP address
        user_agent: Client user agent string
        start_time: Request start timestamp
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            logging.getLogger("shortlinks"),
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_service_manager(request: Request) -> ServiceManager:
    return request.app.state.services


def get_lifecycle_manager(manager: ServiceManager = Depends(get_service_manager)) -> LinkLifecycleManager:
    return manager.lifecycle


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


async def schedule_sweep(request: Request) -> None:
    """Fire a best-effort expiry sweep alongside request handling."""
    services: Optional[ServiceManager] = getattr(request.app.state, "services", None)
    if services is None or not services.settings.SWEEP_ON_REQUEST:
        return
    services.sweeper.trigger()
