"""FastAPI authentication dependencies for route protection."""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.auth.security import decode_token
from stayhub.database import get_db
from stayhub.models.user import User

# Strict bearer: rejects requests without a token
_bearer_scheme = HTTPBearer()


async def _user_from_access_token(token: str, db: AsyncSession) -> User | None:
    """Resolve an access token to an active user, or ``None`` if it does not."""
    try:
        payload = decode_token(token, expected_type="access")
        user_id = uuid.UUID(payload.get("sub") or "")
    except (JWTError, ValueError):
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate the Bearer token, then return the authenticated user.

    Raises:
        HTTPException 401: If the token is invalid, expired, wrong type, or the
            user is missing or inactive.
    """
    user = await _user_from_access_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
