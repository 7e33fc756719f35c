"""
Rate limiting middleware with in-process fixed-window counters.

One limiter per endpoint class (general API, frame interactions, tip
preparation, image rendering), each with its own record table.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Collection, Dict, List, Optional

import structlog
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)
slog = structlog.stdlib.get_logger("rate_limit")

# Clock returning epoch milliseconds
Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimitExceeded(Exception):
    """Rate limit has been exceeded."""
    def __init__(self, limit: int, window_seconds: int, retry_after: int, reset_at: int = 0):
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after = retry_after
        self.reset_at = reset_at
        super().__init__(f"Rate limit exceeded: {limit} requests per {window_seconds}s")


# Endpoint classes by path prefix; longest prefix wins
DEFAULT_PATH_CLASSES: Dict[str, str] = {
    "/frame/image": "images",
    "/frame/prepare-tip": "tips",
    "/frame/tx": "tips",
    "/frame": "frames",
    "default": "api",
}


@dataclass
class RateLimitRecord:
    identifier: str
    count: int
    window_reset_at: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def retry_after_seconds(self, now_ms: int) -> int:
        return max(0, -(-(self.reset_at - now_ms) // 1000))


class RateLimiter:
    """
    Fixed-window request counter keyed by identifier.

    The (N+1)-th request inside a window is denied; ``now >= reset_at`` opens
    a new window. Faults inside ``check`` fail open.
    """

    LOCK_STRIPES = 64

    def __init__(
        self,
        max_requests: int = 100,
        window_ms: int = 60_000,
        clock: Optional[Clock] = None,
        name: str = "api",
    ):
        if max_requests < 1 or window_ms < 1:
            raise ValueError("max_requests and window_ms must be positive")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.name = name
        self._clock = clock or _now_ms
        self._records: Dict[str, RateLimitRecord] = {}
        # Per-identifier serialisation without a global lock
        self._locks = [threading.Lock() for _ in range(self.LOCK_STRIPES)]
        self._next_sweep_at = 0

    def _lock_for(self, identifier: str) -> threading.Lock:
        return self._locks[hash(identifier) % self.LOCK_STRIPES]

    def now(self) -> int:
        return self._clock()

    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier`` and decide allow/deny."""
        try:
            return self._check(identifier)
        except Exception:
            logger.exception("Rate limiter %s failed, allowing request", self.name)
            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - 1,
                reset_at=self._safe_now() + self.window_ms,
            )

    def _safe_now(self) -> int:
        try:
            return self._clock()
        except Exception:
            return _now_ms()

    def _check(self, identifier: str) -> RateLimitResult:
        now = self._clock()
        if now >= self._next_sweep_at:
            self._sweep(now)

        with self._lock_for(identifier):
            record = self._records.get(identifier)
            if record is None or now >= record.window_reset_at:
                record = RateLimitRecord(identifier=identifier, count=1, window_reset_at=now + self.window_ms)
                self._records[identifier] = record
            else:
                record.count += 1

            if record.count > self.max_requests:
                return RateLimitResult(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_at=record.window_reset_at,
                )
            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - record.count,
                reset_at=record.window_reset_at,
            )

    def _sweep(self, now: int) -> None:
        """Drop records whose window has passed. Runs at most once per window."""
        self._next_sweep_at = now + self.window_ms
        for identifier, record in list(self._records.items()):
            if now >= record.window_reset_at:
                with self._lock_for(identifier):
                    current = self._records.get(identifier)
                    if current is not None and now >= current.window_reset_at:
                        del self._records[identifier]

    def status(self, identifier: str) -> Optional[RateLimitRecord]:
        record = self._records.get(identifier)
        if record is None:
            return None
        return RateLimitRecord(record.identifier, record.count, record.window_reset_at)

    def reset(self, identifier: str) -> None:
        with self._lock_for(identifier):
            self._records.pop(identifier, None)

    def clear(self) -> None:
        for lock in self._locks:
            lock.acquire()
        try:
            self._records.clear()
        finally:
            for lock in reversed(self._locks):
                lock.release()

    def __len__(self) -> int:
        return len(self._records)


class RateLimiterRegistry:
    """One independent limiter per endpoint class."""

    def __init__(
        self,
        configs: Dict[str, Dict[str, int]],
        clock: Optional[Clock] = None,
        path_classes: Optional[Dict[str, str]] = None,
    ):
        self.limiters: Dict[str, RateLimiter] = {
            name: RateLimiter(
                max_requests=cfg["max_requests"],
                window_ms=cfg["window_ms"],
                clock=clock,
                name=name,
            )
            for name, cfg in configs.items()
        }
        self.path_classes = path_classes or DEFAULT_PATH_CLASSES
        # Longest prefix first so /frame/image beats /frame
        self._prefixes = sorted(
            (p for p in self.path_classes if p != "default"),
            key=len,
            reverse=True,
        )

    def get(self, endpoint_class: str) -> RateLimiter:
        return self.limiters[endpoint_class]

    def class_for_path(self, path: str) -> str:
        for prefix in self._prefixes:
            if path == prefix or path.startswith(prefix + "/") or path.startswith(prefix + "?"):
                return self.path_classes[prefix]
        return self.path_classes.get("default", "api")

    def limiter_for_path(self, path: str) -> Optional[RateLimiter]:
        return self.limiters.get(self.class_for_path(path))


def get_client_identifier(request: Request, trusted_proxies: Collection[str] = ()) -> str:
    """Client IP used as the rate-limit key.

    Forwarding headers are only believed when the socket peer is one of
    ``trusted_proxies``; any other caller is keyed on its own address.
    """
    peer = request.client.host if request.client and request.client.host else None
    if peer is None or peer not in trusted_proxies:
        return peer or "anonymous"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip.strip()
    return peer


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for rate limiting.
    """

    def __init__(
        self,
        app,
        registry: RateLimiterRegistry,
        exclude_paths: Optional[List[str]] = None,
        trusted_ips: Optional[List[str]] = None,
        trusted_proxies: Optional[List[str]] = None,
        enabled: bool = True,
    ):
        super().__init__(app)
        self.registry = registry
        self.exclude_paths = exclude_paths or [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/healthz",
        ]
        self.trusted_ips = set(trusted_ips or [])
        self.trusted_proxies = frozenset(trusted_proxies or [])
        self.enabled = enabled

    def _is_excluded(self, path: str) -> bool:
        return path == "/" or any(path.startswith(p) for p in self.exclude_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        if not self.enabled or self._is_excluded(path):
            return await call_next(request)

        identifier = get_client_identifier(request, self.trusted_proxies)
        if identifier in self.trusted_ips:
            return await call_next(request)

        endpoint_class = self.registry.class_for_path(path)
        limiter = self.registry.limiter_for_path(path)
        if limiter is None:
            return await call_next(request)

        result = limiter.check(identifier)
        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at),
        }

        if not result.allowed:
            exc = RateLimitExceeded(
                limit=result.limit,
                window_seconds=max(1, limiter.window_ms // 1000),
                retry_after=result.retry_after_seconds(limiter.now()),
                reset_at=result.reset_at,
            )
            slog.info(
                "rate_limited",
                endpoint_class=endpoint_class,
                identifier=identifier,
                limit=exc.limit,
                retry_after=exc.retry_after,
            )
            return Response(
                content=json.dumps(
                    {
                        "error": "Too Many Requests",
                        "message": f"Rate limit exceeded. Try again after {exc.retry_after} seconds.",
                        "retry_after": exc.retry_after,
                    }
                ),
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={
                    "Content-Type": "application/json",
                    "Retry-After": str(exc.retry_after),
                    "X-RateLimit-Window": str(exc.window_seconds),
                    **headers,
                },
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response
