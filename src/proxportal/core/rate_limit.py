"""In-process rate limiting and login lockout."""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import HTTPException, Request, Response, status

from proxportal.config import RateLimitRule

logger = logging.getLogger(__name__)

# Expired windows are swept once this many keys are tracked
MAX_TRACKED_KEYS = 10_000


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass
class RateLimitResult:
    """Outcome of a single hit against a limiter."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int


class RateLimiter:
    """Fixed-window request counter keyed by client identity.

    State lives in process memory, so limits apply per worker.
    """

    def __init__(self, rule: RateLimitRule, clock: Callable[[], float] = time.time):
        self.rule = rule
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def hit(self, key: str) -> RateLimitResult:
        """Count a request for ``key`` and report whether it is allowed."""
        if len(self._windows) >= MAX_TRACKED_KEYS:
            self.cleanup()

        now = self._clock()
        window = self._windows.get(key)
        if window is None or window.reset_at <= now:
            window = _Window(count=0, reset_at=now + self.rule.window_seconds)
            self._windows[key] = window

        window.count += 1
        allowed = window.count <= self.rule.max_requests
        return RateLimitResult(
            allowed=allowed,
            limit=self.rule.max_requests,
            remaining=max(0, self.rule.max_requests - window.count),
            reset_at=window.reset_at,
            retry_after=0 if allowed else math.ceil(window.reset_at - now),
        )

    def cleanup(self) -> int:
        """Drop expired windows, returning how many were removed."""
        now = self._clock()
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def reset(self) -> None:
        self._windows.clear()


def client_identifier(request: Request) -> str:
    """Identify the caller: the authenticated user if known, else the client IP."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is not None:
        return f"user:{user_id}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return f"ip:{real_ip}"
    if request.client:
        return f"ip:{request.client.host}"
    return "ip:unknown"


def rate_limit(name: str) -> Callable:
    """Build a dependency enforcing the named limiter from app state."""

    async def dependency(request: Request, response: Response) -> None:
        settings = request.app.state.settings
        if not settings.rate_limit.enabled:
            return

        limiter: RateLimiter = request.app.state.rate_limiters[name]
        result = limiter.hit(client_identifier(request))

        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(math.ceil(result.reset_at)),
        }
        if not result.allowed:
            logger.warning(f"Rate limit '{name}' exceeded by {client_identifier(request)}")
            headers["Retry-After"] = str(result.retry_after)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=limiter.rule.message,
                headers=headers,
            )

        response.headers.update(headers)

    return dependency


def build_rate_limiters(rules: dict[str, RateLimitRule]) -> dict[str, RateLimiter]:
    """Create one limiter per named rule."""
    return {name: RateLimiter(rule) for name, rule in rules.items()}


@dataclass
class _Lockout:
    attempts: int = 0
    locked_until: float | None = None


class LoginLockout:
    """Locks an account identifier after repeated failed logins."""

    def __init__(
        self,
        max_attempts: int = 5,
        lockout_seconds: int = 30 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._entries: dict[str, _Lockout] = {}

    def is_locked(self, identifier: str) -> bool:
        return self.remaining_seconds(identifier) > 0

    def remaining_seconds(self, identifier: str) -> int:
        """Seconds until the identifier is unlocked, 0 if it is not locked."""
        entry = self._entries.get(identifier)
        if entry is None or entry.locked_until is None:
            return 0

        remaining = entry.locked_until - self._clock()
        if remaining <= 0:
            del self._entries[identifier]
            return 0
        return math.ceil(remaining)

    def record_failure(self, identifier: str) -> None:
        entry = self._entries.setdefault(identifier, _Lockout())
        entry.attempts += 1
        if entry.attempts >= self.max_attempts:
            entry.locked_until = self._clock() + self.lockout_seconds
            logger.warning(f"Locked {identifier} after {entry.attempts} failed logins")

    def reset(self, identifier: str) -> None:
        self._entries.pop(identifier, None)
