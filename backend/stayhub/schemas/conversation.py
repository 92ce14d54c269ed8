"""Pydantic v2 request/response schemas for messaging endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ParticipantIn(BaseModel):
    id: uuid.UUID
    display_name: str = Field(..., min_length=1, max_length=255)
    photo_url: str | None = Field(None, max_length=512)


class ConversationCreate(BaseModel):
    """Open (or reuse) a conversation between exactly two users."""

    participants: list[ParticipantIn] = Field(..., min_length=2, max_length=2)
    property_id: uuid.UUID | None = None
    property_title: str | None = Field(None, max_length=255)

    @model_validator(mode="after")
    def check_distinct(self) -> "ConversationCreate":
        if self.participants[0].id == self.participants[1].id:
            raise ValueError("participants must be two different users")
        return self


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ParticipantResponse(BaseModel):
    id: uuid.UUID = Field(validation_alias="user_id")
    display_name: str
    photo_url: str | None = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class LastMessage(BaseModel):
    content: str
    timestamp: datetime
    sender_id: uuid.UUID


class ConversationResponse(BaseModel):
    """Conversation summary with the denormalised last message."""

    id: uuid.UUID
    participants: list[ParticipantResponse]
    property_id: uuid.UUID | None = None
    property_title: str | None = None
    last_message: LastMessage | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, conversation) -> "ConversationResponse":
        last_message = None
        if conversation.last_message_at is not None:
            last_message = LastMessage(
                content=conversation.last_message_content or "",
                timestamp=conversation.last_message_at,
                sender_id=conversation.last_message_sender_id,
            )
        return cls(
            id=conversation.id,
            participants=[ParticipantResponse.model_validate(p) for p in conversation.participants],
            property_id=conversation.property_id,
            property_title=conversation.property_title,
            last_message=last_message,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class MessageResponse(BaseModel):
    """A single message in a conversation."""

    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    content: str
    read: bool
    timestamp: datetime = Field(validation_alias="created_at")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class MarkReadResponse(BaseModel):
    updated: int
