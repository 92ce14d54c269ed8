"""Messages page state: conversation list, active thread and sending."""

import logging
import uuid

import httpx

from stayhub.client.api import StayHubClient
from stayhub.schemas.conversation import ConversationResponse, MessageResponse, ParticipantIn
from stayhub.schemas.profile import ProfileResponse
from stayhub.schemas.property import PropertyResponse

logger = logging.getLogger(__name__)


class MessagingController:
    def __init__(self, client: StayHubClient) -> None:
        self.client = client
        self.user_id: uuid.UUID | None = None
        self.conversations: list[ConversationResponse] = []
        self.active: ConversationResponse | None = None
        self.messages: list[MessageResponse] = []
        self.new_message = ""
        self.loading = False
        self.sending = False
        self.error: str | None = None
        # (conversation_id, draft origin) pairs already auto-sent
        self.sent_drafts: set[tuple[uuid.UUID, str]] = set()

    async def activate(
        self,
        user_id: uuid.UUID,
        conversation_id: uuid.UUID | str | None = None,
        draft: str | None = None,
        draft_origin: str | None = None,
    ) -> None:
        """Load conversations and pick the active one.

        With a ``conversation_id`` that matches, that conversation is selected
        and ``draft`` is sent once per ``(conversation, draft_origin)``;
        ``draft_origin`` defaults to the draft text itself. Otherwise the most
        recent conversation is selected.
        """
        self.user_id = user_id
        self.loading = True
        self.error = None
        try:
            self.conversations = await self.client.list_conversations()
        except httpx.HTTPError as exc:
            logger.error("Error fetching conversations: %s", exc)
            self.error = "Failed to load conversations"
            return
        finally:
            self.loading = False

        target = None
        if conversation_id is not None:
            target = next((c for c in self.conversations if str(c.id) == str(conversation_id)), None)

        if target is not None:
            await self.select(target)
            if draft:
                key = (target.id, draft_origin or draft)
                if key not in self.sent_drafts:
                    self.sent_drafts.add(key)
                    await self.send(draft)
        elif self.conversations and self.active is None:
            await self.select(self.conversations[0])

    async def select(self, conversation: ConversationResponse) -> None:
        self.active = conversation
        try:
            self.messages = await self.client.get_messages(conversation.id)
        except httpx.HTTPError as exc:
            logger.error("Error fetching messages: %s", exc)
            self.error = "Failed to load messages"

    async def send(self, content: str | None = None) -> MessageResponse | None:
        """Post ``content`` (or the input box) to the active conversation."""
        text = self.new_message if content is None else content
        if self.sending or not text.strip() or self.active is None:
            return None

        self.sending = True
        self.error = None
        try:
            message = await self.client.send_message(self.active.id, text)
            self.new_message = ""
            self.messages = await self.client.get_messages(self.active.id)
        except httpx.HTTPError as exc:
            logger.error("Error sending message: %s", exc)
            self.error = "Failed to send message"
            return None
        finally:
            self.sending = False
        return message

    async def mark_read(self) -> int:
        if self.active is None:
            return 0
        try:
            return await self.client.mark_read(self.active.id)
        except httpx.HTTPError as exc:
            logger.warning("Could not mark conversation %s as read: %s", self.active.id, exc)
            return 0


async def contact_host(client: StayHubClient, me: ProfileResponse, prop: PropertyResponse) -> uuid.UUID:
    """Open (or reuse) the conversation with a listing's host; returns its id."""
    participants = [
        ParticipantIn(id=me.id, display_name=me.display_name or "User", photo_url=me.photo_url),
        ParticipantIn(id=prop.owner_id, display_name=prop.owner_name, photo_url=prop.owner_image),
    ]
    conversation = await client.create_conversation(participants, property_id=prop.id, property_title=prop.title)
    logger.info("Contacting host %s about %s in conversation %s", prop.owner_id, prop.id, conversation.id)
    return conversation.id
