"""Image validation and recompression before upload."""

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import PurePath

from PIL import Image, UnidentifiedImageError

from stayhub.config import settings
from stayhub.exceptions import ImageTooLargeError, InvalidImageError

logger = logging.getLogger(__name__)

_CONTENT_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp", "GIF": "image/gif"}


@dataclass(frozen=True)
class PreparedImage:
    filename: str
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def _human_size(n: int) -> str:
    if n >= 1024 * 1024:
        return f"{n / (1024 * 1024):.1f}MB"
    if n >= 1024:
        return f"{n // 1024}KB"
    return f"{n}B"


def _safe_filename(filename: str | None) -> str:
    name = PurePath(filename or "image").name
    return "".join(c if c.isalnum() or c in "._-" else "_" for c in name) or "image"


def _recompress(img: Image.Image, max_width: int, quality: int) -> bytes:
    if img.mode == "RGBA":
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[3])
        img = background
    elif img.mode != "RGB":
        img = img.convert("RGB")

    if img.width > max_width:
        height = round(img.height * (max_width / img.width))
        img = img.resize((max_width, height), Image.Resampling.LANCZOS)

    out = BytesIO()
    img.save(out, format="JPEG", quality=quality, optimize=True)
    return out.getvalue()


def prepare_image(
    data: bytes,
    filename: str | None,
    max_bytes: int | None = None,
    max_width: int | None = None,
    quality: int | None = None,
) -> PreparedImage:
    """Validate an upload and shrink it under ``max_bytes`` if needed.

    Images within the limit are passed through untouched. Larger ones are
    resized to ``max_width`` and re-encoded as JPEG; if that still does not
    fit, :class:`ImageTooLargeError` is raised.

    Raises:
        InvalidImageError: ``data`` is not a readable image.
        ImageTooLargeError: still over the ceiling after recompression.
    """
    max_bytes = max_bytes if max_bytes is not None else settings.image_max_bytes
    max_width = max_width if max_width is not None else settings.image_max_width
    quality = quality if quality is not None else settings.image_jpeg_quality
    name = _safe_filename(filename)

    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError(f"{name} is not a valid image") from exc

    if len(data) <= max_bytes:
        content_type = _CONTENT_TYPES.get(img.format or "", "application/octet-stream")
        return PreparedImage(filename=name, data=data, content_type=content_type)

    compressed = _recompress(img, max_width, quality)
    logger.info("Recompressed %s: %d -> %d bytes", name, len(data), len(compressed))
    if len(compressed) > max_bytes:
        raise ImageTooLargeError(
            f"{name} exceeds the {_human_size(max_bytes)} limit even after optimization "
            f"({_human_size(len(compressed))}). Please use a smaller image."
        )

    stem = PurePath(name).stem or "image"
    return PreparedImage(filename=f"{stem}.jpg", data=compressed, content_type="image/jpeg")
