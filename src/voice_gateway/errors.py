"""Gateway exception taxonomy.

Every error raised on purpose by a route or service derives from
GatewayError and carries the HTTP status it maps to. The exception handlers
registered in main.py render them as:

    {"success": false, "error": "<error>", "message": "<message>", ...extra}
"""

from typing import Any


class ConfigurationError(Exception):
    """Raised when required configuration is missing."""

    pass


class GatewayError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error: str | None = None,
        headers: dict[str, str] | None = None,
        **extra: Any,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error is not None:
            self.error = error
        self.headers = headers
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        """Response body for this error."""
        return {
            "success": False,
            "error": self.error,
            "message": self.message,
            **self.extra,
        }


class InvalidRequestError(GatewayError):
    """Missing or malformed input."""

    status_code = 400
    error = "Bad Request"


class AuthError(GatewayError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    error = "Unauthorized"

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class QuotaExceededError(GatewayError):
    """The caller has no calls left on their plan."""

    status_code = 403
    error = "Quota Exceeded"


class NotFoundError(GatewayError):
    status_code = 404
    error = "Not Found"


class RateLimitedError(GatewayError):
    """Too many requests in the current window."""

    status_code = 429
    error = "Too Many Requests"

    def __init__(self, message: str, retry_after: int, **kwargs: Any):
        kwargs.setdefault("headers", {"Retry-After": str(retry_after)})
        super().__init__(message, retryAfter=retry_after, **kwargs)
        self.retry_after = retry_after


class UpstreamProviderError(GatewayError):
    """A third-party API answered with an error or could not be reached.

    The provider's status code is reused when one is available.
    """

    error = "Upstream Provider Error"

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        payload: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, status_code=status_code or 500, **kwargs)
        self.provider = provider
        self.upstream_status = status_code
        self.payload = payload


class InternalError(GatewayError):
    status_code = 500
    error = "Internal Server Error"


class NotificationError(Exception):
    """A notification could not be delivered."""

    pass


class PaymentError(Exception):
    """The payment gateway rejected or failed a request."""

    pass
