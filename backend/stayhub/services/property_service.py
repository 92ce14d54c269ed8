"""Property service: listing search, pagination, and listing lifecycle.

Search results are paged with a keyset cursor over ``(created_at, id)``,
newest first. The cursor is opaque to clients; it is the url-safe base64
of ``"<iso created_at>|<uuid>"`` for the last row of the previous page.
"""

import base64
import binascii
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stayhub.config import settings
from stayhub.exceptions import (
    InvalidCursorError,
    PropertyValidationError,
    StorageError,
)
from stayhub.imaging import PreparedImage
from stayhub.models.conversation import Conversation
from stayhub.models.favorite import Favorite
from stayhub.models.property import STATUS_AVAILABLE, STATUS_PENDING_IMAGES, Property
from stayhub.models.profile import UserProfile
from stayhub.models.reference import Category, Experience
from stayhub.models.user import User
from stayhub.schemas.property import GuestCount, PropertyCreate, PropertyQuery, StructuredQuery, TextSearchQuery
from stayhub.storage import BlobStorage, delete_blobs

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
FEATURED_LIMIT = 4
CLEANING_FEE = Decimal("60")
SERVICE_FEE_RATE = Decimal("0.12")
_NIGHTS_PER_PRICE_UNIT = {"night": 1, "week": 7, "month": 30}
_NULLABLE_FIELDS = {"latitude", "longitude"}


@dataclass
class PropertyPage:
    items: list[Property]
    next_cursor: str | None


@dataclass
class StayQuote:
    property_id: uuid.UUID
    check_in: date
    check_out: date
    nights: int
    guests: int
    nightly_price: Decimal
    subtotal: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total: Decimal


# ---------------------------------------------------------------------------
# Cursor encoding
# ---------------------------------------------------------------------------


def encode_cursor(prop: Property) -> str:
    raw = f"{prop.created_at.isoformat()}|{prop.id}"
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, uuid.UUID]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        created_at, prop_id = raw.split("|", 1)
        last_created_at = datetime.fromisoformat(created_at)
        if last_created_at.tzinfo is not None:
            raise ValueError("cursor timestamps are naive UTC")
        return last_created_at, uuid.UUID(prop_id)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidCursorError("Invalid pagination cursor") from exc


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_property(db: AsyncSession, property_id: uuid.UUID) -> Property | None:
    """Return the property, or ``None`` if it does not exist.

    Backend errors propagate; only "not found" is folded into ``None``.
    """
    return await db.get(Property, property_id)


def _filter_predicates(query: StructuredQuery | TextSearchQuery) -> list:
    # Order matters only for readability of the generated SQL: range on
    # price, thresholds on rooms, then equality filters and status.
    predicates = []
    if query.min_price is not None:
        predicates.append(Property.price >= query.min_price)
    if query.max_price is not None:
        predicates.append(Property.price <= query.max_price)
    if query.bedrooms is not None:
        predicates.append(Property.bedrooms >= query.bedrooms)
    if query.bathrooms is not None:
        predicates.append(Property.bathrooms >= query.bathrooms)
    if query.property_type:
        predicates.append(Property.property_type == query.property_type)
    if query.location:
        predicates.append(Property.location == query.location)
    predicates.append(Property.status == STATUS_AVAILABLE)
    return predicates


def _text_predicate(term: str):
    # Plain substring match; "%" and "_" in the term are literal.
    term = term.strip()
    return or_(
        Property.title.icontains(term, autoescape=True),
        Property.description.icontains(term, autoescape=True),
        Property.location.icontains(term, autoescape=True),
    )


async def get_properties(
    db: AsyncSession,
    query: PropertyQuery | None = None,
    cursor: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> PropertyPage:
    """Fetch one page of available properties, newest first.

    A :class:`TextSearchQuery` adds a case-insensitive match on title,
    description and location on top of the same filters; a
    :class:`StructuredQuery` applies the filters alone.

    Returns an empty page (and logs) if the database call fails.

    Raises:
        InvalidCursorError: If ``cursor`` cannot be decoded.
    """
    query = query or StructuredQuery()
    predicates = _filter_predicates(query)
    if isinstance(query, TextSearchQuery):
        predicates.append(_text_predicate(query.term))

    if cursor:
        last_created_at, last_id = decode_cursor(cursor)
        predicates.append(
            or_(
                Property.created_at < last_created_at,
                and_(Property.created_at == last_created_at, Property.id < last_id),
            )
        )

    stmt = (
        select(Property)
        .where(*predicates)
        .order_by(Property.created_at.desc(), Property.id.desc())
        .limit(page_size)
    )

    try:
        result = await db.execute(stmt)
    except SQLAlchemyError:
        logger.warning("Property search failed [kind=%s]", query.kind, exc_info=True)
        return PropertyPage(items=[], next_cursor=None)

    items = list(result.scalars().all())
    next_cursor = encode_cursor(items[-1]) if len(items) == page_size else None
    logger.debug("Property search [kind=%s] returned %d rows", query.kind, len(items))
    return PropertyPage(items=items, next_cursor=next_cursor)


async def get_featured_properties(db: AsyncSession) -> list[Property]:
    stmt = select(Property).where(Property.featured.is_(True)).limit(FEATURED_LIMIT)
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError:
        logger.warning("Fetching featured properties failed", exc_info=True)
        return []
    return list(result.scalars().all())


async def get_properties_by_owner(db: AsyncSession, owner_id: uuid.UUID) -> list[Property]:
    """All of an owner's listings in any status, newest first."""
    stmt = (
        select(Property)
        .where(Property.owner_id == owner_id)
        .order_by(Property.created_at.desc(), Property.id.desc())
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError:
        logger.warning("Fetching properties for owner %s failed", owner_id, exc_info=True)
        return []
    return list(result.scalars().all())


async def get_categories(db: AsyncSession) -> list[Category]:
    try:
        result = await db.execute(select(Category).order_by(Category.name))
    except SQLAlchemyError:
        logger.warning("Fetching categories failed", exc_info=True)
        return []
    return list(result.scalars().all())


async def get_experiences(db: AsyncSession, limit: int = 4) -> list[Experience]:
    stmt = select(Experience).order_by(Experience.rating.desc(), Experience.created_at.desc()).limit(limit)
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError:
        logger.warning("Fetching experiences failed", exc_info=True)
        return []
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def add_property(
    db: AsyncSession,
    storage: BlobStorage,
    owner: User,
    data: PropertyCreate,
    images: list[PreparedImage],
    on_progress=None,
) -> Property:
    """Create a listing and upload its images.

    The row is inserted as ``pending_images`` first so uploads can be keyed
    by its id, then flipped to ``available`` once every upload succeeded.
    If an upload fails, blobs already stored are deleted and the error is
    re-raised; the row is left ``pending_images`` and the caller's
    transaction is expected to roll back.

    ``images`` must already have gone through
    :func:`stayhub.imaging.prepare_image`. ``on_progress`` receives overall
    percentages across all files.

    Raises:
        PropertyValidationError: No images, or more than allowed.
        StorageError: An upload failed.
    """
    if not images:
        raise PropertyValidationError("At least one image is required")
    if len(images) > settings.max_property_images:
        raise PropertyValidationError(f"You can upload a maximum of {settings.max_property_images} images")

    profile = await db.get(UserProfile, owner.id)
    prop = Property(
        owner_id=owner.id,
        owner_name=(profile.display_name if profile else None) or owner.name or "Host",
        owner_image=(profile.photo_url if profile else None) or owner.avatar_url,
        guests=data.guests or data.bedrooms * 2,
        status=STATUS_PENDING_IMAGES,
        images=[],
        image_keys=[],
        **data.model_dump(exclude={"guests"}),
    )
    db.add(prop)
    await db.flush()

    uploaded: list[str] = []
    total = len(images)
    try:
        for index, image in enumerate(images):
            key = f"properties/{prop.id}/{index}-{image.filename}"

            def _file_progress(pct: int, index: int = index) -> None:
                if on_progress:
                    on_progress(round(index * 100 / total + pct / total))

            await storage.upload(key, image.data, image.content_type, on_progress=_file_progress)
            uploaded.append(key)
    except StorageError:
        logger.error(
            "Image upload failed for property %s after %d/%d files; rolling back blobs",
            prop.id,
            len(uploaded),
            total,
        )
        await delete_blobs(storage, uploaded)
        raise

    prop.image_keys = uploaded
    prop.images = [storage.get_url(key) for key in uploaded]
    prop.status = STATUS_AVAILABLE
    await db.flush()
    await db.refresh(prop)

    logger.info("Property %s created by %s with %d images", prop.id, owner.id, total)
    return prop


async def update_property(db: AsyncSession, prop: Property, changes: dict) -> Property:
    """Apply a partial update. Does not touch favorites or conversations.

    Dropping images keeps ``image_keys`` aligned with the remaining URLs.

    Raises:
        PropertyValidationError: The update would leave an available listing
            without images, or references unknown image URLs.
    """
    new_images = changes.pop("images", None)
    final_images = prop.images if new_images is None else new_images
    if not final_images and changes.get("status", prop.status) == STATUS_AVAILABLE:
        raise PropertyValidationError("An available property must have at least one image")

    if new_images is not None:
        keys = list(prop.image_keys or [])
        key_by_url = {url: keys[i] if i < len(keys) else None for i, url in enumerate(prop.images)}
        if any(url not in key_by_url for url in new_images):
            raise PropertyValidationError("Images can only be reordered or removed")
        prop.images = list(new_images)
        prop.image_keys = [key_by_url[url] for url in new_images if key_by_url[url] is not None]

    for field, value in changes.items():
        if value is None and field not in _NULLABLE_FIELDS:
            continue
        setattr(prop, field, value)

    db.add(prop)
    await db.flush()
    await db.refresh(prop)
    return prop


async def delete_property(db: AsyncSession, prop: Property) -> list[str]:
    """Delete a listing and return the storage keys of its images.

    Favorites of the listing are removed; conversations about it are kept
    (their ``property_title`` snapshot remains) but detached. The blobs are
    left alone: callers pass the returned keys to :func:`delete_blobs` once
    the transaction has committed.
    """
    keys = list(prop.image_keys or [])
    await db.execute(delete(Favorite).where(Favorite.property_id == prop.id))
    await db.execute(
        update(Conversation).where(Conversation.property_id == prop.id).values(property_id=None)
    )
    await db.delete(prop)
    await db.flush()
    logger.info("Property %s deleted (%d blobs pending removal)", prop.id, len(keys))
    return keys


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


def quote_stay(prop: Property, check_in: date, check_out: date, guests: GuestCount) -> StayQuote:
    """Price a stay the way the booking widget shows it.

    Raises:
        PropertyValidationError: Invalid dates or too many guests.
    """
    nights = (check_out - check_in).days
    if nights < 1:
        raise PropertyValidationError("check_out must be after check_in")
    if guests.total > prop.guests:
        raise PropertyValidationError(f"This property sleeps at most {prop.guests} guests")

    per_unit = _NIGHTS_PER_PRICE_UNIT.get(prop.price_type, 1)
    nightly = (Decimal(prop.price) / per_unit).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    subtotal = nightly * nights
    service_fee = (subtotal * SERVICE_FEE_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return StayQuote(
        property_id=prop.id,
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        guests=guests.total,
        nightly_price=nightly,
        subtotal=subtotal,
        cleaning_fee=CLEANING_FEE,
        service_fee=service_fee,
        total=subtotal + service_fee + CLEANING_FEE,
    )
