"""Authentication module.

Verifies identity-provider JWTs and exposes the FastAPI dependencies.
"""

from voice_gateway.auth.jwt import (
    AuthConfig,
    AuthenticatedUser,
    create_access_token,
    get_current_user,
    verify_token,
)

__all__ = [
    "AuthConfig",
    "AuthenticatedUser",
    "create_access_token",
    "get_current_user",
    "verify_token",
]
