"""Client-side session state: who is signed in and their profile.

The :class:`SessionStore` is injected wherever the UI needs the session. Its
state is written only by the client's identity-change notification, so a
sign-in or a restored session flows through one code path.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path

import httpx

from stayhub.client.api import ImageFile, StayHubClient, check_network_connectivity
from stayhub.exceptions import AuthError
from stayhub.schemas.auth import UserResponse
from stayhub.schemas.profile import ProfileResponse

logger = logging.getLogger(__name__)

PROVIDER_RETRY_DELAYS = (1, 2, 4)

ProviderFlow = Callable[[], Awaitable[dict]]


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass
class IdentityMarker:
    uid: str
    email: str
    refresh_token: str | None = None


class IdentityMarkerCache:
    """Small JSON file remembering the last signed-in identity between runs."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> IdentityMarker | None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return IdentityMarker(uid=raw["uid"], email=raw["email"], refresh_token=raw.get("refresh_token"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError):
            logger.warning("Ignoring unreadable identity marker at %s", self.path, exc_info=True)
            return None

    def write(self, marker: IdentityMarker) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(marker)), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            detail = exc.response.json().get("detail")
        except ValueError:
            detail = None
        if isinstance(detail, str):
            return detail
        return f"Request failed with status {exc.response.status_code}"
    return str(exc) or type(exc).__name__


class SessionStore:
    """Session state machine: ``uninitialized -> initializing -> authenticated | anonymous``.

    Args:
        client: API client whose identity notifications drive the state.
        cache: Where the identity marker is persisted.
        navigate: Called with a path after sign-out (UI routing hook).
        connectivity_check: Callable used to enrich provider sign-in failures.
        sleep: Awaitable delay used between provider retries.
    """

    def __init__(
        self,
        client: StayHubClient,
        cache: IdentityMarkerCache,
        navigate: Callable[[str], None] | None = None,
        connectivity_check: Callable[[], Awaitable[bool]] = check_network_connectivity,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.cache = cache
        self.navigate = navigate
        self.connectivity_check = connectivity_check
        self.sleep = sleep

        self.state = SessionState.UNINITIALIZED
        self.user: UserResponse | None = None
        self.profile: ProfileResponse | None = None
        self.error: str | None = None
        self.loading = False

        self._unsubscribe = client.on_identity_change(self._on_identity_change)

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    def close(self) -> None:
        self._unsubscribe()

    async def start(self) -> None:
        """Resume the cached session, if any."""
        marker = self.cache.read()
        if marker is None or not marker.refresh_token:
            self.state = SessionState.ANONYMOUS
            return

        self.state = SessionState.INITIALIZING
        try:
            await self.client.restore_session(marker.refresh_token)
        except httpx.HTTPError:
            logger.warning("Could not restore session for %s", marker.email, exc_info=True)
            self.cache.clear()
            await self._on_identity_change(None)

    async def _on_identity_change(self, user: UserResponse | None) -> None:
        if user is None:
            self.user = None
            self.profile = None
            self.cache.clear()
            self.state = SessionState.ANONYMOUS
            self.loading = False
            return

        self.user = user
        self.cache.write(IdentityMarker(uid=str(user.id), email=user.email, refresh_token=self.client.refresh_token))

        self.loading = True
        profile: ProfileResponse | None = None
        try:
            profile = await self.client.get_profile()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                logger.info("Creating missing profile for %s", user.id)
                try:
                    profile = await self.client.create_profile()
                except httpx.HTTPError as create_exc:
                    logger.error("Could not create profile for %s: %s", user.id, create_exc)
                    self.error = "Failed to load user profile data."
            else:
                logger.error("Could not load profile for %s: %s", user.id, exc)
                self.error = "Failed to load user profile data."
        except httpx.HTTPError as exc:
            logger.error("Could not load profile for %s: %s", user.id, exc)
            self.error = "Failed to load user profile data."
        finally:
            self.profile = profile
            self.state = SessionState.AUTHENTICATED
            self.loading = False

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str, display_name: str) -> UserResponse:
        self.error = None
        try:
            return await self.client.register(email, password, display_name)
        except httpx.HTTPError as exc:
            self.error = _describe(exc)
            raise

    async def sign_in(self, email: str, password: str) -> None:
        """Sign in; the new state arrives through the identity listener."""
        self.error = None
        self.loading = True
        try:
            await self.client.login(email, password)
        except httpx.HTTPError as exc:
            logger.warning("Sign in failed for %s: %s", email, exc)
            self.error = _describe(exc)
            self.loading = False
            raise

    async def sign_in_with_provider(self, flow: ProviderFlow) -> UserResponse:
        """Run a provider flow (popup or redirect) that yields a token pair.

        The flow is retried after 1s, 2s and 4s. If it never succeeds, the
        connectivity check decides which message the raised
        :class:`AuthError` carries.
        """
        self.error = None
        self.loading = True
        last_exc: Exception | None = None
        for attempt, delay in enumerate((0, *PROVIDER_RETRY_DELAYS)):
            if delay:
                await self.sleep(delay)
            try:
                tokens = await flow()
                return await self.client.sign_in_with_tokens(tokens["access_token"], tokens["refresh_token"])
            except Exception as exc:
                logger.warning("Provider sign-in attempt %d failed: %s", attempt + 1, exc)
                last_exc = exc

        if await self.connectivity_check():
            message = f"Sign-in with provider failed: {_describe(last_exc)}"
        else:
            message = "Network connection issue. Please check your internet connection and try again."
        self.error = message
        self.loading = False
        raise AuthError(message) from last_exc

    async def sign_out(self) -> None:
        self.error = None
        try:
            await self.client.logout()
        except httpx.HTTPError as exc:
            self.error = _describe(exc)
            raise
        if self.navigate:
            self.navigate("/")

    async def reset_password(self, email: str) -> None:
        self.error = None
        try:
            await self.client.request_password_reset(email)
        except httpx.HTTPError as exc:
            self.error = _describe(exc)
            raise

    async def update_profile(self, display_name: str | None = None, photo: ImageFile | None = None) -> ProfileResponse:
        """Update the profile server-side and merge the result locally."""
        self.error = None
        if self.user is None:
            self.error = "No user logged in"
            raise AuthError(self.error)
        try:
            updated = await self.client.update_profile(display_name=display_name, photo=photo)
        except httpx.HTTPError as exc:
            logger.error("Error updating profile: %s", exc)
            self.error = _describe(exc)
            raise

        if self.profile is not None:
            self.profile = self.profile.model_copy(
                update={"display_name": updated.display_name, "photo_url": updated.photo_url, "bio": updated.bio}
            )
        else:
            self.profile = updated
        return self.profile
