"""
Fixed-window rate limiting keyed by client identity.

Counting is done by ``limits``' ``FixedWindowRateLimiter`` (the engine
behind slowapi) over an async ``limits`` storage: in-process memory, or
Redis through redis-py.  Each limit class is its own identifier
namespace, so exhausting ``auth`` does not block ``api`` traffic.
"""

from __future__ import annotations

import enum
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request
from limits import RateLimitItem, parse
from limits.aio.storage import Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string
from slowapi.util import get_remote_address

from covidwatch.core.config import Settings

logger = logging.getLogger(__name__)


class LimitClass(str, enum.Enum):
    AUTH = "auth"
    API = "api"
    WRITE = "write"
    SENSITIVE = "sensitive"


# Classes keyed on the network address alone, to bound brute force
# regardless of which account is targeted.
_NETWORK_KEYED = {LimitClass.AUTH, LimitClass.SENSITIVE}


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


def limits_from_settings(settings: Settings) -> dict[LimitClass, RateLimitItem]:
    return {
        LimitClass.AUTH: parse(settings.RATE_LIMIT_AUTH),
        LimitClass.API: parse(settings.RATE_LIMIT_API),
        LimitClass.WRITE: parse(settings.RATE_LIMIT_WRITE),
        LimitClass.SENSITIVE: parse(settings.RATE_LIMIT_SENSITIVE),
    }


def storage_uri(settings: Settings) -> str:
    if settings.STORE_BACKEND == "redis":
        return "async+" + settings.REDIS_URL
    return "async+memory://"


def create_limit_storage(uri: str, **options) -> Storage:
    """Build an async ``limits`` storage; Redis URIs use the redis-py client."""
    if uri.startswith("async+redis"):
        options.setdefault("implementation", "redispy")
    logger.info("Rate-limit storage: %s", uri.split("://", 1)[0])
    return storage_from_string(uri, **options)


def client_key(request: Request, limit_class: LimitClass, user_id: int | None = None) -> str:
    """Derive the counter key for ``limit_class``.

    ``auth``/``sensitive`` use the client address only; ``api``/``write``
    combine it with the authenticated user id (or ``anonymous``).
    """
    address = get_remote_address(request) or "unknown"
    if limit_class in _NETWORK_KEYED:
        return address
    return f"{address}:{user_id if user_id is not None else 'anonymous'}"


class RateLimiter:
    def __init__(
        self,
        storage: Storage,
        limits: dict[LimitClass, RateLimitItem],
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._strategy = FixedWindowRateLimiter(storage)
        self._limits = limits
        self._clock = clock
        self.enabled = enabled

    def limit_for(self, limit_class: LimitClass) -> RateLimitItem:
        return self._limits[limit_class]

    async def check(self, key: str, limit_class: LimitClass) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        item = self._limits[limit_class]
        if not self.enabled:
            return RateLimitDecision(allowed=True, remaining=item.amount)

        allowed = await self._strategy.hit(item, limit_class.value, key)
        stats = await self._strategy.get_window_stats(item, limit_class.value, key)
        if allowed:
            return RateLimitDecision(allowed=True, remaining=stats.remaining)

        retry_after = max(1, math.ceil(stats.reset_time - self._clock()))
        logger.info(
            "Rate limit '%s' exceeded (%s), retry in %ss",
            limit_class.value,
            item,
            retry_after,
        )
        return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)
