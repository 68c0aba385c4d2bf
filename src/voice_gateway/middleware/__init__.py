"""HTTP middleware: rate limiting, request logging and security headers."""

from voice_gateway.middleware.rate_limit import (
    FixedWindowRateLimiter,
    RateLimit,
    RateLimitResult,
    client_ip,
)
from voice_gateway.middleware.request_logging import RequestLoggingMiddleware, sanitize
from voice_gateway.middleware.security import SecurityHeadersMiddleware, add_cors

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimit",
    "RateLimitResult",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "add_cors",
    "client_ip",
    "sanitize",
]
