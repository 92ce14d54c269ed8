"""Auth API router: register, login, refresh, me, Google OAuth, password reset."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.api.deps import get_current_user, get_db
from stayhub.auth.oauth import OAuthUserInfo, get_google_user_info, oauth
from stayhub.auth.security import (
    create_reset_token,
    create_token_pair,
    decode_token,
    hash_password,
    reset_token_matches,
    verify_password,
)
from stayhub.config import settings
from stayhub.models.user import User
from stayhub.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from stayhub.services import notifications
from stayhub.services.profile_service import create_profile, get_or_create_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Helper: find-or-create user from OAuth provider info
# ---------------------------------------------------------------------------


async def _find_or_create_oauth_user(db: AsyncSession, info: OAuthUserInfo) -> User:
    """Look up user by email; create it with a profile if missing."""
    user = await _get_user_by_email(db, info.email)

    if user is not None:
        user.auth_provider = info.provider
        user.auth_provider_id = info.provider_id
        if info.avatar_url and not user.avatar_url:
            user.avatar_url = info.avatar_url
        await db.flush()
        await get_or_create_profile(db, user)
        return user

    user = User(
        email=info.email,
        name=info.name,
        avatar_url=info.avatar_url,
        auth_provider=info.provider,
        auth_provider_id=info.provider_id,
        hashed_password=None,
    )
    db.add(user)
    await db.flush()
    await create_profile(db, user)
    logger.info("Created user %s via %s", user.id, info.provider)
    notifications.send_email("welcome", user.email, name=user.name)
    return user


# ---------------------------------------------------------------------------
# POST /register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    """Register a new user with email and password, creating the profile too."""
    if await _get_user_by_email(db, body.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        name=body.name,
        auth_provider="local",
    )
    db.add(user)
    await db.flush()
    await create_profile(db, user)
    await db.refresh(user)
    notifications.send_email("welcome", user.email, name=user.name)

    tokens = create_token_pair(str(user.id))
    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**tokens),
    )


# ---------------------------------------------------------------------------
# POST /login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    """Authenticate with email and password."""
    user = await _get_user_by_email(db, body.email)

    # Reject: not found, OAuth-only account (no password), or wrong password
    if user is None or user.hashed_password is None or not verify_password(body.password, user.hashed_password):
        raise _unauthorized("Invalid email or password")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    tokens = create_token_pair(str(user.id))
    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**tokens),
    )


# ---------------------------------------------------------------------------
# POST /refresh
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    """Exchange a valid refresh token for a new token pair."""
    try:
        payload = decode_token(body.refresh_token, expected_type="refresh")
        user_id = uuid.UUID(payload.get("sub") or "")
    except (JWTError, ValueError):
        raise _unauthorized("Invalid or expired refresh token") from None

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")

    return TokenResponse(**create_token_pair(str(user.id)))


# ---------------------------------------------------------------------------
# GET /me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the currently authenticated identity."""
    return UserResponse.model_validate(current_user)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


@router.post("/password-reset", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(
    body: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Email a reset link. Always answers 202 so account existence is never revealed."""
    user = await _get_user_by_email(db, body.email)
    if user is not None and user.is_active and user.hashed_password is not None:
        token = create_reset_token(str(user.id), user.hashed_password)
        notifications.send_email(
            "password_reset",
            user.email,
            name=user.name,
            reset_url=f"{settings.frontend_url}/reset-password?token={token}",
            expires_minutes=str(settings.jwt_reset_token_expire_minutes),
        )
    else:
        logger.info("Password reset requested for unknown or passwordless account")
    return MessageResponse(message="If that account exists, a reset link has been sent")


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(
    body: PasswordResetConfirm,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Set a new password using a token from the reset email."""
    invalid = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid or expired reset token",
    )
    try:
        payload = decode_token(body.token, expected_type="reset")
        user_id = uuid.UUID(payload.get("sub") or "")
    except (JWTError, ValueError):
        raise invalid from None

    user = await db.get(User, user_id)
    # A used token no longer matches the hash it was issued against.
    if user is None or not user.hashed_password or not reset_token_matches(payload, user.hashed_password):
        raise invalid

    user.hashed_password = hash_password(body.new_password)
    await db.flush()
    logger.info("Password reset for user %s", user.id)
    return MessageResponse(message="Password updated")


# ---------------------------------------------------------------------------
# Google OAuth
# ---------------------------------------------------------------------------


@router.get("/google")
async def google_login(request: Request) -> RedirectResponse:
    """Redirect to Google's OAuth consent screen."""
    return await oauth.google.authorize_redirect(request, settings.google_redirect_uri)  # type: ignore[return-value]


@router.get("/google/callback")
async def google_callback(request: Request, db: AsyncSession = Depends(get_db)) -> RedirectResponse:
    """Handle Google OAuth callback: find or create user, redirect to frontend with tokens."""
    try:
        token = await oauth.google.authorize_access_token(request)
    except Exception as exc:
        logger.warning("Google OAuth callback failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google authentication failed. Please try again.",
        ) from None

    info = get_google_user_info(token)
    if not info.email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google account has no email address",
        )

    user = await _find_or_create_oauth_user(db, info)
    tokens = create_token_pair(str(user.id))

    redirect_url = (
        f"{settings.frontend_url}/auth/callback"
        f"?access_token={tokens['access_token']}"
        f"&refresh_token={tokens['refresh_token']}"
    )
    return RedirectResponse(url=redirect_url)
