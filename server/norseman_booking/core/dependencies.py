"""FastAPI dependencies for database sessions, admin auth, cron auth and email."""

import secrets
from typing import AsyncGenerator, Mapping, Optional

import jwt
from fastapi import Depends, Header, Request
from jwt import PyJWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.notification_service import Notifier, build_notifier
from .config import settings
from .database import get_async_session
from .exceptions import AuthenticationError


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Process-wide notifier built from settings on first use."""
    global _notifier
    if _notifier is None:
        _notifier = build_notifier(settings)
    return _notifier


async def get_current_admin(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> dict:
    """
    Validate an admin bearer token.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        dict: Admin identity from the validated token

    Raises:
        AuthenticationError: If the token is missing or invalid
    """
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError(detail="Invalid authorization header format")

    try:
        payload = jwt.decode(token, settings.bearer_token_secret, algorithms=["HS256"])
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}") from e

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError(detail="Invalid token payload")

    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "roles": payload.get("roles", []),
    }


def _matches(candidate: Optional[str], secret: str) -> bool:
    return candidate is not None and secrets.compare_digest(candidate.encode(), secret.encode())


def is_cron_request_authorized(
    headers: Mapping[str, str],
    query_params: Mapping[str, str],
    secret: Optional[str],
    trusted_header: str = "x-vercel-cron",
) -> bool:
    """
    Decide whether a sweep request may run.

    Any one credential is enough: the scheduler's trusted header, a bearer
    token, the x-cron-secret header or a ?secret= query parameter. Only the
    trusted header works when no secret is configured.
    """
    if headers.get(trusted_header) == "1":
        return True

    if not secret:
        return False

    authorization = headers.get("authorization")
    if authorization and authorization.startswith("Bearer "):
        if _matches(authorization[len("Bearer "):], secret):
            return True

    if _matches(headers.get("x-cron-secret"), secret):
        return True

    return _matches(query_params.get("secret"), secret)


async def authorize_cron(request: Request) -> None:
    """Reject sweep requests that carry none of the accepted credentials."""
    if not is_cron_request_authorized(
        request.headers,
        request.query_params,
        settings.cron_secret,
        settings.cron_trusted_header,
    ):
        raise AuthenticationError(scheme="Bearer")


DatabaseSession = Depends(get_db)
RequiredAdmin = Depends(get_current_admin)
CronAuthorized = Depends(authorize_cron)
NotifierDependency = Depends(get_notifier)
