"""Tests for the client-side SessionStore state machine."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import create_user, sdk_client
from stayhub.auth.security import create_token_pair
from stayhub.client.api import StayHubClient
from stayhub.client.session import (
    IdentityMarker,
    IdentityMarkerCache,
    SessionState,
    SessionStore,
)
from stayhub.exceptions import AuthError
from stayhub.main import app
from stayhub.models.user import User

PASSWORD = "testpass123"


@pytest.fixture
def cache(tmp_path) -> IdentityMarkerCache:
    return IdentityMarkerCache(tmp_path / "session" / "identity.json")


def _store(sdk: StayHubClient, cache: IdentityMarkerCache, **kwargs) -> SessionStore:
    async def online() -> bool:
        return True

    async def no_sleep(_: float) -> None:
        return None

    kwargs.setdefault("connectivity_check", online)
    kwargs.setdefault("sleep", no_sleep)
    return SessionStore(sdk, cache, **kwargs)


# ---------------------------------------------------------------------------
# Identity marker cache
# ---------------------------------------------------------------------------


class TestIdentityMarkerCache:
    def test_missing_file_reads_none(self, cache: IdentityMarkerCache):
        assert cache.read() is None

    def test_write_read_clear(self, cache: IdentityMarkerCache):
        cache.write(IdentityMarker(uid="u1", email="a@b.c", refresh_token="r"))
        assert cache.read() == IdentityMarker(uid="u1", email="a@b.c", refresh_token="r")
        cache.clear()
        assert cache.read() is None

    def test_corrupt_file_reads_none(self, cache: IdentityMarkerCache):
        cache.path.parent.mkdir(parents=True)
        cache.path.write_text("{not json", encoding="utf-8")
        assert cache.read() is None


# ---------------------------------------------------------------------------
# Start / sign in / sign out
# ---------------------------------------------------------------------------


class TestSessionLifecycle:
    async def test_start_without_marker_is_anonymous(self, sdk: StayHubClient, cache: IdentityMarkerCache):
        store = _store(sdk, cache)
        assert store.state == SessionState.UNINITIALIZED
        await store.start()
        assert store.state == SessionState.ANONYMOUS
        assert store.user is None

    async def test_sign_in_loads_profile_and_writes_marker(
        self, sdk: StayHubClient, cache: IdentityMarkerCache, test_user: User
    ):
        store = _store(sdk, cache)
        await store.sign_in(test_user.email, PASSWORD)

        assert store.is_authenticated
        assert store.user.id == test_user.id
        assert store.profile is not None
        assert store.profile.display_name == "Test Host"
        assert store.loading is False

        marker = cache.read()
        assert marker.uid == str(test_user.id)
        assert marker.refresh_token == sdk.refresh_token

    async def test_missing_profile_is_created(
        self, sdk: StayHubClient, cache: IdentityMarkerCache, db_session: AsyncSession
    ):
        user = await create_user(db_session, "Fresh Guest", with_profile=False)
        store = _store(sdk, cache)
        await store.sign_in(user.email, PASSWORD)

        assert store.is_authenticated
        assert store.profile is not None
        assert store.profile.id == user.id
        assert store.error is None

    async def test_wrong_password_sets_error(
        self, sdk: StayHubClient, cache: IdentityMarkerCache, test_user: User
    ):
        store = _store(sdk, cache)
        with pytest.raises(httpx.HTTPStatusError):
            await store.sign_in(test_user.email, "wrong-password")
        assert store.error
        assert store.loading is False
        assert not store.is_authenticated

    async def test_profile_failure_still_authenticates(
        self, client: AsyncClient, cache: IdentityMarkerCache, test_user: User
    ):
        asgi = ASGITransport(app=app)

        async def profile_store_down(request: httpx.Request) -> httpx.Response:
            if request.method == "GET" and request.url.path == "/api/v1/profile/me":
                return httpx.Response(500, json={"detail": "Profile store unavailable"})
            return await asgi.handle_async_request(request)

        async with StayHubClient("http://testserver", transport=httpx.MockTransport(profile_store_down)) as api:
            store = _store(api, cache)
            await store.sign_in(test_user.email, PASSWORD)

        assert store.state == SessionState.AUTHENTICATED
        assert store.user.id == test_user.id
        assert store.profile is None
        assert store.error == "Failed to load user profile data."
        assert store.loading is False

    async def test_sign_out_navigates_home(self, sdk: StayHubClient, cache: IdentityMarkerCache, test_user: User):
        visited: list[str] = []
        store = _store(sdk, cache, navigate=visited.append)
        await store.sign_in(test_user.email, PASSWORD)
        await store.sign_out()

        assert store.state == SessionState.ANONYMOUS
        assert store.user is None
        assert store.profile is None
        assert cache.read() is None
        assert visited == ["/"]

    async def test_start_restores_cached_session(
        self, sdk: StayHubClient, cache: IdentityMarkerCache, test_user: User
    ):
        await _store(sdk, cache).sign_in(test_user.email, PASSWORD)

        async with sdk_client() as fresh:
            store = _store(fresh, cache)
            await store.start()
            assert store.is_authenticated
            assert store.user.email == test_user.email
            assert fresh.access_token is not None

    async def test_start_with_bad_token_falls_back_to_anonymous(
        self, sdk: StayHubClient, cache: IdentityMarkerCache
    ):
        cache.write(IdentityMarker(uid="someone", email="gone@test.com", refresh_token="not-a-jwt"))
        store = _store(sdk, cache)
        await store.start()
        assert store.state == SessionState.ANONYMOUS
        assert cache.read() is None

    async def test_closed_store_ignores_identity_changes(
        self, sdk: StayHubClient, cache: IdentityMarkerCache, test_user: User
    ):
        store = _store(sdk, cache)
        store.close()
        await sdk.login(test_user.email, PASSWORD)
        assert store.state == SessionState.UNINITIALIZED


# ---------------------------------------------------------------------------
# Provider sign-in
# ---------------------------------------------------------------------------


class TestProviderSignIn:
    async def test_succeeds_after_retry(self, sdk: StayHubClient, cache: IdentityMarkerCache, test_user: User):
        delays: list[float] = []
        attempts = 0

        async def flow() -> dict:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise RuntimeError("popup closed")
            return create_token_pair(str(test_user.id))

        async def record(delay: float) -> None:
            delays.append(delay)

        store = _store(sdk, cache, sleep=record)
        user = await store.sign_in_with_provider(flow)

        assert user.id == test_user.id
        assert store.is_authenticated
        assert delays == [1, 2]

    async def test_gives_up_with_network_message_when_offline(
        self, sdk: StayHubClient, cache: IdentityMarkerCache
    ):
        delays: list[float] = []

        async def flow() -> dict:
            raise RuntimeError("popup closed")

        async def record(delay: float) -> None:
            delays.append(delay)

        async def offline() -> bool:
            return False

        store = _store(sdk, cache, sleep=record, connectivity_check=offline)
        with pytest.raises(AuthError, match="Network connection issue"):
            await store.sign_in_with_provider(flow)

        assert delays == [1, 2, 4]
        assert store.error.startswith("Network connection issue")
        assert store.loading is False

    async def test_gives_up_with_provider_message_when_online(
        self, sdk: StayHubClient, cache: IdentityMarkerCache
    ):
        async def flow() -> dict:
            raise RuntimeError("popup closed")

        store = _store(sdk, cache)
        with pytest.raises(AuthError, match="popup closed"):
            await store.sign_in_with_provider(flow)


# ---------------------------------------------------------------------------
# Profile and password reset
# ---------------------------------------------------------------------------


class TestSessionOperations:
    async def test_update_profile_merges(self, sdk: StayHubClient, cache: IdentityMarkerCache, test_user: User):
        store = _store(sdk, cache)
        await store.sign_in(test_user.email, PASSWORD)

        profile = await store.update_profile(display_name="Renamed Host")
        assert profile.display_name == "Renamed Host"
        assert store.profile.display_name == "Renamed Host"
        assert store.profile.email == test_user.email

    async def test_update_profile_requires_user(self, sdk: StayHubClient, cache: IdentityMarkerCache):
        store = _store(sdk, cache)
        with pytest.raises(AuthError):
            await store.update_profile(display_name="Nobody")
        assert store.error == "No user logged in"

    async def test_reset_password_for_unknown_email(self, sdk: StayHubClient, cache: IdentityMarkerCache):
        store = _store(sdk, cache)
        await store.reset_password("nobody@test.com")
        assert store.error is None

    async def test_sign_up_creates_account(self, sdk: StayHubClient, cache: IdentityMarkerCache):
        store = _store(sdk, cache)
        user = await store.sign_up("newcomer@test.com", "longenough1", "New Comer")
        assert user.email == "newcomer@test.com"
        assert store.is_authenticated
        assert store.profile.display_name == "New Comer"
