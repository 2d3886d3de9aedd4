from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class RateLimitScope(str, Enum):
    GLOBAL = "global"
    DATA = "data"
    AUTH = "auth"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int


class RateLimiterPort(Protocol):
    def hit(self, *, scope: RateLimitScope, caller_key: str) -> RateLimitDecision:
        ...
