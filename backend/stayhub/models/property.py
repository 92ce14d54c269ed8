"""Property model: rental listings."""

import uuid
from decimal import Decimal

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stayhub.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

PRICE_TYPES = ("night", "week", "month")
PROPERTY_TYPES = ("Apartment", "House", "Condo", "Villa", "Cabin", "Loft", "Studio", "Penthouse")

STATUS_AVAILABLE = "available"
STATUS_BOOKED = "booked"
STATUS_PENDING_IMAGES = "pending_images"
PROPERTY_STATUSES = (STATUS_AVAILABLE, STATUS_BOOKED, STATUS_PENDING_IMAGES)


class Property(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A listing offered for rent by its owner."""

    __tablename__ = "properties"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_image: Mapped[str | None] = mapped_column(String(512), default=None)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_type: Mapped[str] = mapped_column(String(20), nullable=False, default="night")
    images: Mapped[list] = mapped_column(JSON, default=list)  # public URLs, display order
    image_keys: Mapped[list] = mapped_column(JSON, default=list)  # blob keys, same order
    bedrooms: Mapped[int] = mapped_column(nullable=False, default=1)
    bathrooms: Mapped[Decimal] = mapped_column(Numeric(3, 1), nullable=False, default=Decimal("1"))
    guests: Mapped[int] = mapped_column(nullable=False, default=2)
    amenities: Mapped[list] = mapped_column(JSON, default=list)
    property_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Apartment")
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    review_count: Mapped[int] = mapped_column(default=0, nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, default=None)
    longitude: Mapped[float | None] = mapped_column(Float, default=None)
    status: Mapped[str] = mapped_column(String(50), default=STATUS_PENDING_IMAGES, nullable=False)

    __table_args__ = (
        Index("ix_properties_status_created_at", "status", "created_at"),
        Index("ix_properties_featured", "featured"),
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title!r}, status={self.status!r})>"
