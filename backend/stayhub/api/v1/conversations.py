"""Messaging API routes: conversations between guests and hosts."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.api.deps import get_current_user, get_db
from stayhub.api.errors import http_error
from stayhub.exceptions import StayHubError
from stayhub.models.conversation import Conversation
from stayhub.models.user import User
from stayhub.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
)
from stayhub.services import conversation_service
from stayhub.services.conversation_service import Participant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


async def _get_my_conversation(db: AsyncSession, conversation_id: uuid.UUID, user: User) -> Conversation:
    """404 both for unknown ids and for conversations the user is not part of."""
    conversation = await conversation_service.get_conversation_for_participant(db, conversation_id, user.id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[ConversationResponse]:
    """The current user's conversations, most recently active first."""
    conversations = await conversation_service.get_conversations(db, current_user.id)
    return [ConversationResponse.from_model(c) for c in conversations]


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    body: ConversationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ConversationResponse:
    """Open a conversation, or return the existing one for the same pair and property."""
    if current_user.id not in {p.id for p in body.participants}:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be one of the participants",
        )

    try:
        conversation = await conversation_service.create_conversation(
            db,
            [Participant(id=p.id, display_name=p.display_name, photo_url=p.photo_url) for p in body.participants],
            property_id=body.property_id,
            property_title=body.property_title,
        )
    except StayHubError as exc:
        raise http_error(exc) from exc
    return ConversationResponse.from_model(conversation)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[MessageResponse]:
    conversation = await _get_my_conversation(db, conversation_id, current_user)
    messages = await conversation_service.get_messages(db, conversation.id)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: uuid.UUID,
    body: MessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    conversation = await _get_my_conversation(db, conversation_id, current_user)
    try:
        message = await conversation_service.send_message(db, conversation, current_user.id, body.content)
    except StayHubError as exc:
        raise http_error(exc) from exc
    return MessageResponse.model_validate(message)


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkReadResponse:
    """Mark the other participant's messages as read."""
    conversation = await _get_my_conversation(db, conversation_id, current_user)
    updated = await conversation_service.mark_messages_as_read(db, conversation.id, current_user.id)
    return MarkReadResponse(updated=updated)
