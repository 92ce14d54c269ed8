"""Google OAuth configuration using authlib Starlette integration."""

from authlib.integrations.starlette_client import OAuth
from pydantic import BaseModel

from stayhub.config import settings

oauth = OAuth()

# Google OAuth: OpenID Connect (auto-discovers endpoints)
oauth.register(
    name="google",
    client_id=settings.google_client_id,
    client_secret=settings.google_client_secret,
    server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
    client_kwargs={"scope": "openid email profile", "prompt": "select_account"},
)


class OAuthUserInfo(BaseModel):
    email: str
    name: str
    avatar_url: str | None = None
    provider: str
    provider_id: str


def get_google_user_info(token: dict) -> OAuthUserInfo:
    """Extract user info from a Google OAuth token response.

    Google uses OpenID Connect, so the profile is in the ID token's
    ``userinfo`` claim without an extra API call. A missing display name
    falls back to the local part of the email.
    """
    userinfo = token.get("userinfo") or {}
    email = userinfo.get("email", "")
    return OAuthUserInfo(
        email=email,
        name=userinfo.get("name") or email.split("@")[0],
        avatar_url=userinfo.get("picture"),
        provider="google",
        provider_id=userinfo.get("sub", ""),
    )
