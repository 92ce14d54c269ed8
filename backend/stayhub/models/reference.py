"""Read-only reference data shown on the home page."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Float, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stayhub.database import Base, UUIDPrimaryKeyMixin, utcnow


class Category(UUIDPrimaryKeyMixin, Base):
    """Browse category (e.g. "Beachfront") with a listing count."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    image: Mapped[str] = mapped_column(String(512), default="")
    count: Mapped[int] = mapped_column(default=0)


class Experience(UUIDPrimaryKeyMixin, Base):
    """Bookable local experience hosted by a user."""

    __tablename__ = "experiences"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    location: Mapped[str] = mapped_column(String(255), default="")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    image: Mapped[str] = mapped_column(String(512), default="")
    rating: Mapped[float] = mapped_column(Float, default=0.0)
    review_count: Mapped[int] = mapped_column(default=0)
    host_name: Mapped[str] = mapped_column(String(255), default="")
    duration: Mapped[int] = mapped_column(default=1)  # hours
    languages: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
