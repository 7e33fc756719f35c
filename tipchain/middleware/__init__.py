from .logging_middleware import RequestLoggingMiddleware
from .rate_limit import (
    RateLimiter,
    RateLimiterRegistry,
    RateLimitExceeded,
    RateLimitMiddleware,
    RateLimitRecord,
    RateLimitResult,
    get_client_identifier,
)

__all__ = [
    "RequestLoggingMiddleware",
    "RateLimiter",
    "RateLimiterRegistry",
    "RateLimitExceeded",
    "RateLimitMiddleware",
    "RateLimitRecord",
    "RateLimitResult",
    "get_client_identifier",
]
