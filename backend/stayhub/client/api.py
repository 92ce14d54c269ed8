"""Async HTTP client for the StayHub API.

:class:`StayHubClient` wraps an ``httpx.AsyncClient``, keeps the token pair
of the signed-in user and notifies identity listeners whenever the user
signs in, is restored, or signs out. The stateful controllers in
:mod:`stayhub.client` are built on top of it.

HTTP errors are raised as ``httpx.HTTPStatusError`` so callers can branch on
``exc.response.status_code``.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import date

import httpx

from stayhub.schemas.auth import UserResponse
from stayhub.schemas.conversation import (
    ConversationResponse,
    MessageResponse,
    ParticipantIn,
)
from stayhub.schemas.profile import ProfileResponse
from stayhub.schemas.property import (
    GuestCount,
    PropertyCreate,
    PropertyFilter,
    PropertyPageResponse,
    PropertyResponse,
    StayQuoteResponse,
)

logger = logging.getLogger(__name__)

CONNECTIVITY_URL = "https://www.google.com/generate_204"

IdentityListener = Callable[[UserResponse | None], Awaitable[None]]
ImageFile = tuple[str, bytes]  # (filename, content)


async def check_network_connectivity(
    url: str = CONNECTIVITY_URL,
    timeout: float = 5.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Check general internet reachability with a ``HEAD`` request."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as http:
            await http.head(url)
    except httpx.HTTPError as exc:
        logger.warning("Connectivity check to %s failed: %s", url, exc)
        return False
    return True


class StayHubClient:
    """Typed wrapper over the ``/api/v1`` endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self._listeners: list[IdentityListener] = []
        self.access_token: str | None = None
        self.refresh_token: str | None = None
        self.current_user: UserResponse | None = None

    async def __aenter__(self) -> "StayHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def on_identity_change(self, listener: IdentityListener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _set_identity(self, user: UserResponse | None) -> None:
        self.current_user = user
        for listener in list(self._listeners):
            await listener(user)

    def _store_tokens(self, tokens: dict) -> None:
        self.access_token = tokens["access_token"]
        self.refresh_token = tokens["refresh_token"]

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", None) or {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        response = await self._http.request(method, f"/api/v1{path}", headers=headers, **kwargs)
        if response.is_error:
            logger.debug("%s %s -> %d %s", method, path, response.status_code, response.text)
        response.raise_for_status()
        return response

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def _authenticate(self, path: str, payload: dict) -> UserResponse:
        data = (await self._request("POST", path, json=payload)).json()
        self._store_tokens(data["tokens"])
        user = UserResponse.model_validate(data["user"])
        await self._set_identity(user)
        return user

    async def register(self, email: str, password: str, name: str) -> UserResponse:
        return await self._authenticate("/auth/register", {"email": email, "password": password, "name": name})

    async def login(self, email: str, password: str) -> UserResponse:
        return await self._authenticate("/auth/login", {"email": email, "password": password})

    async def me(self) -> UserResponse:
        return UserResponse.model_validate((await self._request("GET", "/auth/me")).json())

    async def sign_in_with_tokens(self, access_token: str, refresh_token: str) -> UserResponse:
        """Adopt a token pair obtained elsewhere, e.g. from the OAuth redirect."""
        self.access_token = access_token
        self.refresh_token = refresh_token
        user = await self.me()
        await self._set_identity(user)
        return user

    async def restore_session(self, refresh_token: str) -> UserResponse:
        """Exchange a cached refresh token for a fresh pair and load the user."""
        tokens = (await self._request("POST", "/auth/refresh", json={"refresh_token": refresh_token})).json()
        return await self.sign_in_with_tokens(tokens["access_token"], tokens["refresh_token"])

    async def logout(self) -> None:
        self.access_token = None
        self.refresh_token = None
        await self._set_identity(None)

    async def request_password_reset(self, email: str) -> None:
        await self._request("POST", "/auth/password-reset", json={"email": email})

    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        await self._request("POST", "/auth/password-reset/confirm", json={"token": token, "new_password": new_password})

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self) -> ProfileResponse:
        return ProfileResponse.model_validate((await self._request("GET", "/profile/me")).json())

    async def create_profile(self) -> ProfileResponse:
        return ProfileResponse.model_validate((await self._request("POST", "/profile/me")).json())

    async def update_profile(
        self,
        display_name: str | None = None,
        bio: str | None = None,
        photo: ImageFile | None = None,
    ) -> ProfileResponse:
        form = {k: v for k, v in {"display_name": display_name, "bio": bio}.items() if v is not None}
        files = {"photo": (photo[0], photo[1], "application/octet-stream")} if photo else None
        response = await self._request("PATCH", "/profile/me", data=form, files=files)
        return ProfileResponse.model_validate(response.json())

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    async def search_properties(
        self,
        filters: PropertyFilter | None = None,
        *,
        q: str | None = None,
        cursor: str | None = None,
        page_size: int = 10,
    ) -> PropertyPageResponse:
        params = filters.model_dump(mode="json", exclude_none=True, exclude={"search_term"}) if filters else {}
        if q and q.strip():
            params["q"] = q.strip()
        if cursor:
            params["cursor"] = cursor
        params["page_size"] = page_size
        response = await self._request("GET", "/properties", params=params)
        return PropertyPageResponse.model_validate(response.json())

    async def get_featured_properties(self) -> list[PropertyResponse]:
        data = (await self._request("GET", "/properties/featured")).json()
        return [PropertyResponse.model_validate(item) for item in data]

    async def get_my_properties(self) -> list[PropertyResponse]:
        data = (await self._request("GET", "/properties/mine")).json()
        return [PropertyResponse.model_validate(item) for item in data]

    async def get_property(self, property_id: uuid.UUID | str) -> PropertyResponse:
        return PropertyResponse.model_validate((await self._request("GET", f"/properties/{property_id}")).json())

    async def create_property(self, data: PropertyCreate, images: list[ImageFile]) -> PropertyResponse:
        files = [("images", (name, content, "application/octet-stream")) for name, content in images]
        response = await self._request("POST", "/properties", data={"data": data.model_dump_json()}, files=files)
        return PropertyResponse.model_validate(response.json())

    async def update_property(self, property_id: uuid.UUID | str, **changes) -> PropertyResponse:
        response = await self._request("PATCH", f"/properties/{property_id}", json=changes)
        return PropertyResponse.model_validate(response.json())

    async def delete_property(self, property_id: uuid.UUID | str) -> None:
        await self._request("DELETE", f"/properties/{property_id}")

    async def quote_stay(
        self,
        property_id: uuid.UUID | str,
        check_in: date,
        check_out: date,
        guests: GuestCount | None = None,
    ) -> StayQuoteResponse:
        payload = {
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "guests": (guests or GuestCount()).model_dump(),
        }
        response = await self._request("POST", f"/properties/{property_id}/quote", json=payload)
        return StayQuoteResponse.model_validate(response.json())

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    async def list_favorites(self) -> list[PropertyResponse]:
        data = (await self._request("GET", "/favorites")).json()
        return [PropertyResponse.model_validate(item) for item in data["items"]]

    async def is_favorite(self, property_id: uuid.UUID | str) -> bool:
        return (await self._request("GET", f"/favorites/{property_id}")).json()["is_favorite"]

    async def add_favorite(self, property_id: uuid.UUID | str) -> None:
        await self._request("POST", f"/favorites/{property_id}")

    async def remove_favorite(self, property_id: uuid.UUID | str) -> None:
        await self._request("DELETE", f"/favorites/{property_id}")

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def list_conversations(self) -> list[ConversationResponse]:
        data = (await self._request("GET", "/conversations")).json()
        return [ConversationResponse.model_validate(item) for item in data]

    async def create_conversation(
        self,
        participants: list[ParticipantIn],
        property_id: uuid.UUID | str | None = None,
        property_title: str | None = None,
    ) -> ConversationResponse:
        payload = {
            "participants": [p.model_dump(mode="json") for p in participants],
            "property_id": str(property_id) if property_id else None,
            "property_title": property_title,
        }
        response = await self._request("POST", "/conversations", json=payload)
        return ConversationResponse.model_validate(response.json())

    async def get_messages(self, conversation_id: uuid.UUID | str) -> list[MessageResponse]:
        data = (await self._request("GET", f"/conversations/{conversation_id}/messages")).json()
        return [MessageResponse.model_validate(item) for item in data]

    async def send_message(self, conversation_id: uuid.UUID | str, content: str) -> MessageResponse:
        response = await self._request("POST", f"/conversations/{conversation_id}/messages", json={"content": content})
        return MessageResponse.model_validate(response.json())

    async def mark_read(self, conversation_id: uuid.UUID | str) -> int:
        return (await self._request("POST", f"/conversations/{conversation_id}/read")).json()["updated"]
