"""
Fixed-window rate limiter.

Counts requests per (operation class, caller key) inside a window that
opens at the first admitted request. Thread-safe: a check-and-increment
is atomic, so concurrent callers can never exceed the limit together.

Usage:
    limiter = get_rate_limiter()
    decision = limiter.enforce("203.0.113.7:user_123", OperationClass.AUTHORIZE)
"""

import enum
import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from nitroauth.config import Settings, get_settings
from nitroauth.core.exceptions import RateLimitExceededException
from nitroauth.services.metrics import get_metrics_collector

logger = logging.getLogger(__name__)


class OperationClass(str, enum.Enum):
    """Rate-limit classes, each with its own policy."""
    AUTHORIZE = "authorize"
    VALIDATE = "validate"
    ADMIN = "admin"
    SETUP = "setup"


@dataclass(frozen=True)
class RateLimitPolicy:
    """At most ``limit`` requests per ``window_ms`` milliseconds."""

    limit: int
    window_ms: int


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Admission result.

    Attributes:
        allowed: Whether the request was admitted (and counted)
        limit: Policy limit
        remaining: Requests left in the current window
        reset_at_ms: Epoch milliseconds at which the window closes
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    now_ms: int

    @property
    def retry_after(self) -> int:
        """Whole seconds until the window closes, never below 1 when denied."""
        seconds = math.ceil(max(self.reset_at_ms - self.now_ms, 0) / 1000)
        return max(seconds, 1) if not self.allowed else seconds

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at_ms),
        }


@dataclass
class _Window:
    count: int
    reset_at_ms: int
    retired: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class RateLimiter:
    """
    In-process fixed-window limiter.

    Each (operation, key) entry carries its own lock; the registry lock is
    held only to look up or insert an entry. Windows that have closed are
    dropped by ``sweep``, which the application runs periodically.
    """

    def __init__(
        self,
        policies: dict[OperationClass, RateLimitPolicy],
        clock: Callable[[], float] = time.time,
    ):
        self._policies = dict(policies)
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._registry_lock = threading.Lock()

    def policy(self, operation: OperationClass) -> RateLimitPolicy:
        return self._policies[operation]

    def _window_for(self, window_key: str) -> _Window:
        with self._registry_lock:
            window = self._windows.get(window_key)
            if window is None:
                # Closed immediately, so the first check opens it
                window = _Window(count=0, reset_at_ms=0)
                self._windows[window_key] = window
            return window

    def check(self, key: str, operation: OperationClass) -> RateLimitDecision:
        """
        Admit or deny one request for ``key`` under ``operation``'s policy.

        An admitted request is counted; a denied one is not.
        """
        policy = self._policies[operation]
        window_key = f"{operation.value}:{key}"

        while True:
            window = self._window_for(window_key)
            with window.lock:
                if window.retired:
                    # Swept between lookup and lock; use the replacement entry
                    continue

                now_ms = int(self._clock() * 1000)
                if now_ms >= window.reset_at_ms:
                    window.count = 0
                    window.reset_at_ms = now_ms + policy.window_ms

                if window.count >= policy.limit:
                    return RateLimitDecision(
                        allowed=False,
                        limit=policy.limit,
                        remaining=0,
                        reset_at_ms=window.reset_at_ms,
                        now_ms=now_ms,
                    )

                window.count += 1
                return RateLimitDecision(
                    allowed=True,
                    limit=policy.limit,
                    remaining=policy.limit - window.count,
                    reset_at_ms=window.reset_at_ms,
                    now_ms=now_ms,
                )

    def enforce(self, key: str, operation: OperationClass) -> RateLimitDecision:
        """
        Like ``check`` but raises when the request is denied.

        Raises:
            RateLimitExceededException: If the window is exhausted
        """
        decision = self.check(key, operation)
        if not decision.allowed:
            logger.warning(
                f"Rate limit exceeded for {operation.value} (key={key}, "
                f"retry_after={decision.retry_after}s)"
            )
            get_metrics_collector().record_rate_limited(operation.value)
            raise RateLimitExceededException(
                limit=decision.limit,
                reset_at_ms=decision.reset_at_ms,
                retry_after=decision.retry_after,
            )
        return decision

    def sweep(self) -> int:
        """Drop closed windows. Returns the number removed."""
        removed = 0
        with self._registry_lock:
            now_ms = int(self._clock() * 1000)
            for window_key, window in list(self._windows.items()):
                with window.lock:
                    if now_ms >= window.reset_at_ms:
                        window.retired = True
                        del self._windows[window_key]
                        removed += 1

        if removed:
            logger.debug(f"Swept {removed} expired rate-limit windows")
        return removed

    def reset(self) -> None:
        """Forget all windows."""
        with self._registry_lock:
            for window in self._windows.values():
                with window.lock:
                    window.retired = True
            self._windows.clear()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._windows)


def policies_from_settings(settings: Settings) -> dict[OperationClass, RateLimitPolicy]:
    """Build the per-class policies from configuration."""
    return {
        OperationClass.AUTHORIZE: RateLimitPolicy(
            settings.RATE_LIMIT_AUTHORIZE_REQUESTS, settings.RATE_LIMIT_AUTHORIZE_WINDOW_MS
        ),
        OperationClass.VALIDATE: RateLimitPolicy(
            settings.RATE_LIMIT_VALIDATE_REQUESTS, settings.RATE_LIMIT_VALIDATE_WINDOW_MS
        ),
        OperationClass.ADMIN: RateLimitPolicy(
            settings.RATE_LIMIT_ADMIN_REQUESTS, settings.RATE_LIMIT_ADMIN_WINDOW_MS
        ),
        OperationClass.SETUP: RateLimitPolicy(
            settings.RATE_LIMIT_SETUP_REQUESTS, settings.RATE_LIMIT_SETUP_WINDOW_MS
        ),
    }


# Global limiter instance
_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get the process-wide rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(policies_from_settings(get_settings()))
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Discard the process-wide limiter (for tests)."""
    global _rate_limiter
    _rate_limiter = None
