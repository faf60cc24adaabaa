# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Fixed-window request counters per upstream provider.

Each provider gets ``limit`` requests per ``window_seconds``. When the clock
passes the window end the counter drops to zero and a new window starts at
that moment. Bursts straddling a boundary are accepted.

Counters live in process memory only; a restart resets them.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderQuota:
    limit: int
    window_seconds: float


@dataclass
class RateLimitWindow:
    request_count: int
    window_reset_at: float


class RateLimiter:
    """Per-provider fixed-window quota tracker. Thread-safe."""

    def __init__(
        self,
        quotas: Mapping[str, ProviderQuota],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._quotas: Dict[str, ProviderQuota] = {_key(k): v for k, v in quotas.items()}
        self._clock = clock
        self._lock = threading.Lock()
        now = clock()
        self._windows: Dict[str, RateLimitWindow] = {
            name: RateLimitWindow(request_count=0, window_reset_at=now + q.window_seconds)
            for name, q in self._quotas.items()
        }

    def _roll_window(self, provider: str, now: float) -> RateLimitWindow:
        window = self._windows[provider]
        if now >= window.window_reset_at:
            window.request_count = 0
            window.window_reset_at = now + self._quotas[provider].window_seconds
        return window

    def can_make_request(self, provider: str) -> bool:
        """True while the provider's current window still has quota left."""
        provider = _key(provider)
        if provider not in self._quotas:
            return False
        with self._lock:
            window = self._roll_window(provider, self._clock())
            allowed = window.request_count < self._quotas[provider].limit
        if not allowed:
            logger.debug("[RATE_LIMIT] %s quota exhausted until %s", provider, _iso(window.window_reset_at))
        return allowed

    def record_request(self, provider: str) -> None:
        provider = _key(provider)
        if provider not in self._quotas:
            return
        with self._lock:
            window = self._roll_window(provider, self._clock())
            window.request_count += 1

    def try_acquire(self, provider: str) -> bool:
        """Check and record one request under a single lock.

        Returns False, without counting anything, when the window is used up.
        """
        provider = _key(provider)
        if provider not in self._quotas:
            return False
        with self._lock:
            window = self._roll_window(provider, self._clock())
            allowed = window.request_count < self._quotas[provider].limit
            if allowed:
                window.request_count += 1
        if not allowed:
            logger.debug("[RATE_LIMIT] %s quota exhausted until %s", provider, _iso(window.window_reset_at))
        return allowed

    def status(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot for the rate-limit status view."""
        out: Dict[str, Dict[str, Any]] = {}
        with self._lock:
            now = self._clock()
            for name, quota in self._quotas.items():
                window = self._roll_window(name, now)
                out[name] = {
                    "requests": window.request_count,
                    "limit": quota.limit,
                    "remaining": max(0, quota.limit - window.request_count),
                    "window_seconds": quota.window_seconds,
                    "reset_at": _iso(window.window_reset_at),
                }
        return out


def _key(provider: Any) -> str:
    return provider.value if isinstance(provider, Enum) else str(provider)


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


__all__ = ["ProviderQuota", "RateLimitWindow", "RateLimiter"]
