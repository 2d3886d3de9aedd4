from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass

from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter

from geoverse.application.ports.rate_limiter_port import RateLimitDecision, RateLimiterPort, RateLimitScope


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitBudget:
    max_requests: int
    window_seconds: int

    @classmethod
    def parse(cls, raw: str) -> RateLimitBudget:
        """Parse ``"<count>/<window_seconds>"``, e.g. ``"10/900"``."""
        try:
            count, window = raw.split("/", 1)
            budget = cls(max_requests=int(count), window_seconds=int(window))
        except ValueError as exc:
            raise ValueError(f"Invalid rate limit budget {raw!r}; expected '<count>/<seconds>'.") from exc
        if budget.max_requests <= 0 or budget.window_seconds <= 0:
            raise ValueError(f"Invalid rate limit budget {raw!r}; values must be positive.")
        return budget


class WindowRateLimiter(RateLimiterPort):
    """Fixed-window counters per (scope, caller), backed by ``limits`` storage."""

    def __init__(self, *, budgets: dict[RateLimitScope, RateLimitBudget], storage_uri: str = "memory://"):
        self._storage = storage_from_string(storage_uri)
        self._limiter = FixedWindowRateLimiter(self._storage)
        self._items = {
            scope: RateLimitItemPerSecond(budget.max_requests, budget.window_seconds)
            for scope, budget in budgets.items()
        }

    def hit(self, *, scope: RateLimitScope, caller_key: str) -> RateLimitDecision:
        item = self._items.get(scope)
        if item is None:
            return RateLimitDecision(allowed=True, remaining=-1, retry_after_seconds=0)

        allowed = self._limiter.hit(item, scope.value, caller_key)
        stats = self._limiter.get_window_stats(item, scope.value, caller_key)
        retry_after = 0
        if not allowed:
            retry_after = max(int(math.ceil(stats.reset_time - time.time())), 1)
            logger.debug(
                "rate_limiter: exhausted scope=%s caller=%s retry_after=%s",
                scope.value,
                caller_key,
                retry_after,
            )
        return RateLimitDecision(allowed=allowed, remaining=stats.remaining, retry_after_seconds=retry_after)

    def reset(self) -> None:
        self._storage.reset()
