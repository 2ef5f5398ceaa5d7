"""FastAPI dependencies for database sessions and authentication."""

import logging
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError
from .security import decode_access_token

logger = logging.getLogger(__name__)


def _extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an `Authorization: Bearer <token>` header."""
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError(detail="Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")

    return token


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token
        db: Database session

    Returns:
        User: The account the token was issued for

    Raises:
        AuthenticationError: If the token is missing, invalid, expired,
            or belongs to an account that no longer exists
    """
    token = _extract_bearer_token(authorization)

    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(detail="Token has expired")
    except jwt.PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {str(e)}")

    try:
        user_id = UUID(str(payload["id"]))
    except ValueError:
        raise AuthenticationError(detail="Invalid token payload")

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("Token presented for unknown user", extra={"user_id": str(user_id)})
        raise AuthenticationError(detail="User for this token no longer exists")

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Authorization dependency that only lets administrators through."""
    if not current_user.is_admin:
        logger.warning(
            "Admin access denied",
            extra={"user_id": str(current_user.id), "role": current_user.role}
        )
        raise AuthorizationError(
            detail="Access denied. You must be an admin.",
            required_role="admin",
        )
    return current_user


DatabaseSession = Depends(get_db)
RequiredAuth = Depends(get_current_user)
AdminAuth = Depends(require_admin)
