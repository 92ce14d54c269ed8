"""Conversation and message persistence for guest/host messaging."""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.database import utcnow
from stayhub.exceptions import (
    ConversationValidationError,
    PermissionDeniedError,
    PropertyNotFoundError,
    UserNotFoundError,
)
from stayhub.models.conversation import (
    Conversation,
    ConversationParticipant,
    Message,
    participant_key_for,
    property_key_for,
)
from stayhub.models.property import Property
from stayhub.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Participant:
    id: uuid.UUID
    display_name: str
    photo_url: str | None = None


async def get_conversations(db: AsyncSession, user_id: uuid.UUID) -> list[Conversation]:
    """List a user's conversations, most recently active first."""
    stmt = (
        select(Conversation)
        .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
        .where(ConversationParticipant.user_id == user_id)
        .order_by(Conversation.updated_at.desc())
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError:
        logger.warning("Listing conversations for %s failed", user_id, exc_info=True)
        return []
    return list(result.scalars().unique().all())


async def get_conversation_for_participant(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Conversation | None:
    """Get a conversation only if ``user_id`` takes part in it."""
    stmt = (
        select(Conversation)
        .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
        .where(Conversation.id == conversation_id, ConversationParticipant.user_id == user_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _find_conversation(db: AsyncSession, participant_key: str, property_key: str) -> Conversation | None:
    result = await db.execute(
        select(Conversation).where(
            Conversation.participant_key == participant_key,
            Conversation.property_key == property_key,
        )
    )
    return result.scalar_one_or_none()


async def create_conversation(
    db: AsyncSession,
    participants: list[Participant],
    property_id: uuid.UUID | None = None,
    property_title: str | None = None,
) -> Conversation:
    """Return the conversation for this pair and property, creating it if needed.

    Uniqueness is enforced by ``uq_conversations_pair_property``. The lookup
    runs first; if a concurrent request inserts the same pair between the
    lookup and our insert, the savepoint is rolled back and the winner's row
    is returned.

    Raises:
        ConversationValidationError: Not exactly two distinct participants.
        UserNotFoundError: A participant is not a registered user.
        PropertyNotFoundError: ``property_id`` does not name an existing listing.
    """
    ids = [p.id for p in participants]
    if len(ids) != 2 or ids[0] == ids[1]:
        raise ConversationValidationError("A conversation needs exactly two different participants")

    participant_key = participant_key_for(ids)
    property_key = property_key_for(property_id)

    existing = await _find_conversation(db, participant_key, property_key)
    if existing is not None:
        return existing

    known = await db.scalar(select(func.count()).select_from(User).where(User.id.in_(ids)))
    if known != 2:
        raise UserNotFoundError("Both participants must be registered users")
    if property_id is not None and await db.get(Property, property_id) is None:
        raise PropertyNotFoundError(f"Property {property_id} not found")

    conversation = Conversation(
        participant_key=participant_key,
        property_key=property_key,
        property_id=property_id,
        property_title=property_title,
        participants=[
            ConversationParticipant(
                user_id=p.id,
                position=position,
                display_name=p.display_name,
                photo_url=p.photo_url,
            )
            for position, p in enumerate(participants)
        ],
    )
    try:
        async with db.begin_nested():
            db.add(conversation)
    except IntegrityError:
        logger.info("Conversation %s/%s created concurrently; reusing", participant_key, property_key)
        existing = await _find_conversation(db, participant_key, property_key)
        if existing is None:
            raise
        return existing

    await db.refresh(conversation)
    logger.info("Created conversation %s [property=%s]", conversation.id, property_id)
    return conversation


async def get_messages(db: AsyncSession, conversation_id: uuid.UUID) -> list[Message]:
    """Messages of a conversation in display order (oldest first)."""
    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError:
        logger.warning("Loading messages for conversation %s failed", conversation_id, exc_info=True)
        return []
    return list(result.scalars().all())


async def send_message(
    db: AsyncSession,
    conversation: Conversation,
    sender_id: uuid.UUID,
    content: str,
) -> Message:
    """Append a message and refresh the conversation's last-message snapshot.

    Both writes go through the same session, so they commit or roll back
    together with the request.

    Raises:
        PermissionDeniedError: ``sender_id`` is not a participant.
    """
    if sender_id not in conversation.participant_ids:
        raise PermissionDeniedError("Only participants can post to this conversation")

    now = utcnow()
    message = Message(
        conversation_id=conversation.id,
        sender_id=sender_id,
        content=content,
        read=False,
        created_at=now,
    )
    db.add(message)

    conversation.last_message_content = content
    conversation.last_message_at = now
    conversation.last_message_sender_id = sender_id
    conversation.updated_at = now

    await db.flush()
    await db.refresh(message)
    logger.debug("Message %s appended to conversation %s", message.id, conversation.id)
    return message


async def mark_messages_as_read(db: AsyncSession, conversation_id: uuid.UUID, user_id: uuid.UUID) -> int:
    """Flag every unread message not written by ``user_id``; returns the count."""
    result = await db.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.sender_id != user_id,
            Message.read.is_(False),
        )
        .values(read=True)
    )
    return result.rowcount or 0
