"""Favorite model: a user's saved property."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stayhub.database import Base, UUIDPrimaryKeyMixin, utcnow


class Favorite(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "favorites"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_favorites_user_property"),)

    def __repr__(self) -> str:
        return f"<Favorite(user_id={self.user_id}, property_id={self.property_id})>"
