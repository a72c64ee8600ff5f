"""Exception hierarchy for image loading, resizing and saving."""

from typing_extensions import override


class ImageProcessingError(Exception):
    """Base class for every failure raised by image_resizer.

    ``public_safe_message`` holds text that is safe to show to end users
    (no paths, no stack details). It is only set when the raiser attached one.
    """

    def __init__(self, message: str, safe_message: str | None = None):
        self.message: str = message
        self.public_safe_message: str | None = safe_message
        super().__init__(self.message)

    @override
    def __str__(self):
        return self.message


class UsageError(ImageProcessingError, ValueError):
    """Invalid argument or policy supplied by the caller."""


class NotFoundError(ImageProcessingError, FileNotFoundError):
    """Local source file does not exist."""


class NetworkError(ImageProcessingError, ConnectionError):
    """Remote source could not be fetched."""


class ImageCorruptedError(ImageProcessingError):
    """Source bytes could not be decoded as a raster image."""

    def __init__(self, message: str):
        super().__init__(message, safe_message=message)


class EncodeError(ImageProcessingError):
    """Raster could not be encoded in the requested format."""
