"""Conversation, participant and message models for guest/host messaging."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stayhub.database import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow


def participant_key_for(user_ids: list[uuid.UUID]) -> str:
    """Order-independent key for a pair of participants."""
    return ":".join(sorted(str(uid) for uid in user_ids))


def property_key_for(property_id: uuid.UUID | None) -> str:
    return str(property_id) if property_id is not None else ""


class Conversation(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A two-party conversation, optionally about a specific property."""

    __tablename__ = "conversations"

    participant_key: Mapped[str] = mapped_column(String(80), nullable=False)
    property_key: Mapped[str] = mapped_column(String(36), nullable=False, default="")
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    property_title: Mapped[str | None] = mapped_column(String(255))

    # Denormalised snapshot of the newest message
    last_message_content: Mapped[str | None] = mapped_column(Text)
    last_message_at: Mapped[datetime | None] = mapped_column()
    last_message_sender_id: Mapped[uuid.UUID | None] = mapped_column()

    # Relationships
    participants: Mapped[list["ConversationParticipant"]] = relationship(
        back_populates="conversation",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ConversationParticipant.position",
    )

    __table_args__ = (
        UniqueConstraint("participant_key", "property_key", name="uq_conversations_pair_property"),
    )

    @property
    def participant_ids(self) -> list[uuid.UUID]:
        return [p.user_id for p in self.participants]

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, participant_key={self.participant_key!r})>"


class ConversationParticipant(Base):
    """Membership row; also carries the participant's display snapshot."""

    __tablename__ = "conversation_participants"

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(String(512))

    conversation: Mapped["Conversation"] = relationship(back_populates="participants")


class Message(UUIDPrimaryKeyMixin, Base):
    """A single message. Immutable apart from the ``read`` flag."""

    __tablename__ = "messages"

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    __table_args__ = (Index("ix_messages_conversation_id_created_at", "conversation_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, conversation_id={self.conversation_id}, sender_id={self.sender_id})>"
