"""Domain exceptions raised by the service layer.

Services never raise ``HTTPException``; routers translate these into
status codes (validation -> 422, not found -> 404, forbidden -> 403,
storage -> 502).
"""


class StayHubError(Exception):
    """Base class for all StayHub domain errors."""


class ValidationError(StayHubError):
    """Input rejected before any backend write was attempted."""


class PropertyValidationError(ValidationError):
    pass


class ConversationValidationError(ValidationError):
    pass


class InvalidImageError(ValidationError):
    """Uploaded bytes are not a readable image."""


class ImageTooLargeError(ValidationError):
    """Image still exceeds the size ceiling after recompression."""


class InvalidCursorError(ValidationError):
    """Pagination cursor could not be decoded."""


class NotFoundError(StayHubError):
    pass


class FavoriteNotFoundError(NotFoundError):
    pass


class PropertyNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class PermissionDeniedError(StayHubError):
    pass


class StorageError(StayHubError):
    """Blob storage upload/delete failed."""


class AuthError(StayHubError):
    """Client-side authentication flow failed."""
