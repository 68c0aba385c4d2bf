"""Identity-provider JWT validation.

Users sign in with Supabase; the gateway verifies the access tokens it
issues locally with the project's JWT secret.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from voice_gateway.errors import AuthError

logger = logging.getLogger("voice-gateway-auth")

ALGORITHM = "HS256"
DEFAULT_AUDIENCE = "authenticated"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


@dataclass
class AuthConfig:
    """JWT verification settings."""

    jwt_secret: str = ""
    audience: str = DEFAULT_AUDIENCE
    algorithm: str = ALGORITHM

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """Load auth config from environment variables."""
        jwt_secret = os.getenv("SUPABASE_JWT_SECRET", "")
        if not jwt_secret:
            logger.warning("SUPABASE_JWT_SECRET not set - authenticated routes will reject all tokens")
        return cls(
            jwt_secret=jwt_secret,
            audience=os.getenv("SUPABASE_JWT_AUDIENCE", DEFAULT_AUDIENCE),
        )


class AuthenticatedUser(BaseModel):
    """The caller identified by a verified token."""

    id: str
    email: str | None = None


# Security scheme for Swagger UI
security = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str,
    config: AuthConfig,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a token shaped like the identity provider's access tokens.

    Args:
        user_id: The user's id (``sub`` claim).
        config: Secret, audience and algorithm to sign with.
        email: Optional email claim.
        expires_delta: Optional custom expiration time.

    Returns:
        Encoded JWT access token.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.now(timezone.utc)
    to_encode: dict[str, Any] = {
        "sub": user_id,
        "aud": config.audience,
        "role": "authenticated",
        "exp": now + expires_delta,
        "iat": now,
    }
    if email:
        to_encode["email"] = email
    return jwt.encode(to_encode, config.jwt_secret, algorithm=config.algorithm)


def verify_token(token: str, config: AuthConfig) -> AuthenticatedUser:
    """Decode and validate an access token.

    Raises:
        AuthError: If the token is invalid, expired or carries no subject.
    """
    if not config.jwt_secret:
        raise AuthError("Invalid or expired token")

    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.algorithm],
            audience=config.audience,
        )
    except JWTError as e:
        logger.info(f"[Auth] Token rejected: {e!s}")
        raise AuthError("Invalid or expired token") from e

    subject = payload.get("sub")
    if not subject:
        raise AuthError("Invalid or expired token")

    return AuthenticatedUser(id=subject, email=payload.get("email"))


def _auth_config(request: Request) -> AuthConfig:
    return request.app.state.services.settings.auth


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> AuthenticatedUser:
    """FastAPI dependency to get the current authenticated user.

    Usage:
        @router.get("/calls")
        async def list_calls(user: AuthenticatedUser = Depends(get_current_user)):
            ...

    Raises:
        AuthError: 401 if not authenticated or token invalid.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing or invalid Authorization header")

    user = verify_token(credentials.credentials, _auth_config(request))
    request.state.user = user
    logger.info(f"[Auth] User authenticated: {user.id}")
    return user
