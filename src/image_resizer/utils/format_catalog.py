"""Extension, container-format and MIME type lookups.

The catalog is process-wide and read-mostly. Every read and every runtime
registration takes the same lock, so registration is safe from any thread.
"""

import logging
import os
import threading
from collections.abc import Iterable

from ..common.errors import ImageProcessingError, UsageError
from ..common.schemas import FileSignature, FormatEntry, ImageFormat

logger = logging.getLogger(__name__)

_CONTENT_TYPES: dict[ImageFormat, str] = {
    ImageFormat.PNG: "image/png",
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.GIF: "image/gif",
    ImageFormat.BMP: "image/bmp",
    ImageFormat.TIFF: "image/tiff",
}

_DEFAULT_EXTENSIONS: tuple[tuple[str, ImageFormat], ...] = (
    ("jpg", ImageFormat.JPEG),
    ("jpeg", ImageFormat.JPEG),
    ("jpe", ImageFormat.JPEG),
    ("jif", ImageFormat.JPEG),
    ("jfif", ImageFormat.JPEG),
    ("jfi", ImageFormat.JPEG),
    ("exif", ImageFormat.JPEG),
    ("bmp", ImageFormat.BMP),
    ("gif", ImageFormat.GIF),
    ("png", ImageFormat.PNG),
    ("tif", ImageFormat.TIFF),
    ("tiff", ImageFormat.TIFF),
    ("tff", ImageFormat.TIFF),
)

# Source: http://www.filesignatures.net/
FILE_SIGNATURES: tuple[FileSignature, ...] = (
    FileSignature(signature=b"\xff\xd8\xff", extension="jpg", mime_type="image/jpeg"),
    # BMP or DIB
    FileSignature(signature=b"BM", extension="bmp", mime_type="image/x-ms-bmp"),
    FileSignature(signature=b"GIF8", extension="gif", mime_type="image/gif"),
    FileSignature(
        signature=b"\x89PNG\r\n\x1a\n", extension="png", mime_type="image/png"
    ),
    FileSignature(signature=b"\xd7\xcd\xc6\x9a", extension="wmf", mime_type="image/x-wmf"),
    # Icon or printer spool
    FileSignature(signature=b"\x00\x00\x01\x00", extension="ico", mime_type="image/x-icon"),
    FileSignature(signature=b"I I", extension="tif", mime_type="image/tiff"),
    FileSignature(signature=b"II*\x00", extension="tif", mime_type="image/tiff"),
    FileSignature(signature=b"MM\x00*", extension="tif", mime_type="image/tiff"),
    FileSignature(signature=b"MM\x00+", extension="tif", mime_type="image/tiff"),
)


def normalize_extension(extension: str) -> str:
    """Lowercase an extension and strip surrounding dots and spaces."""
    return extension.strip(". ").lower()


def match_signature(data: bytes) -> FileSignature | None:
    """Return the first signature that prefixes ``data``, if any."""
    for signature in FILE_SIGNATURES:
        if signature.matches(data):
            return signature
    return None


def get_content_type(image_format: ImageFormat | str) -> str:
    """Return the MIME type of a container format.

    Raises:
        ImageProcessingError: If the format has no MIME mapping
    """
    try:
        return _CONTENT_TYPES[ImageFormat(str(image_format).upper())]
    except (KeyError, ValueError) as exc:
        raise ImageProcessingError(f"Unsupported format {image_format}") from exc


class FormatCatalog:
    """Registry mapping file extensions to container formats.

    Extension order is preserved; reverse lookups return the first extension
    registered for a format.
    """

    def __init__(self, extensions: Iterable[tuple[str, ImageFormat]] = _DEFAULT_EXTENSIONS):
        self._lock: threading.Lock = threading.Lock()
        self._extensions: dict[str, ImageFormat] = {}
        for extension, image_format in extensions:
            self._add(extension, image_format)

    def add_image_extension(self, extension: str, image_format: ImageFormat | str) -> None:
        """Register an extra extension for a known format.

        Raises:
            UsageError: If the extension is empty or already registered,
                or the format is unknown
        """
        with self._lock:
            self._add(extension, image_format)
        logger.debug(f"Registered image extension {extension!r} -> {image_format}")

    def get_image_format_from_extension(self, extension: str | None) -> ImageFormat | None:
        if not extension:
            return None
        key = normalize_extension(extension)
        with self._lock:
            return self._extensions.get(key)

    def get_image_format_from_path(self, path: str | os.PathLike[str]) -> ImageFormat | None:
        """Guess the container format from a path's extension. Extensions can lie."""
        _, extension = os.path.splitext(os.fspath(path))
        return self.get_image_format_from_extension(extension)

    def get_extension_from_image_format(self, image_format: ImageFormat | str) -> str | None:
        try:
            wanted = ImageFormat(str(image_format).upper())
        except ValueError:
            return None
        with self._lock:
            for extension, known in self._extensions.items():
                if known == wanted:
                    return extension
        return None

    def entries(self) -> list[FormatEntry]:
        with self._lock:
            items = list(self._extensions.items())
        return [
            FormatEntry(
                extension=extension,
                image_format=image_format,
                mime_type=_CONTENT_TYPES[image_format],
            )
            for extension, image_format in items
        ]

    def _add(self, extension: str, image_format: ImageFormat | str) -> None:
        key = normalize_extension(extension)
        if not key:
            raise UsageError("Extension must not be empty")
        try:
            known = ImageFormat(image_format)
        except ValueError as exc:
            raise UsageError(f"Unknown image format: {image_format}") from exc
        if key in self._extensions:
            raise UsageError(f"Extension already registered: {key}")
        self._extensions[key] = known


# Singleton instance shared across the package
_default_catalog: FormatCatalog | None = None
_default_catalog_lock = threading.Lock()


def get_format_catalog() -> FormatCatalog:
    """Get the process-wide format catalog.

    Returns:
        FormatCatalog instance
    """
    global _default_catalog
    with _default_catalog_lock:
        if _default_catalog is None:
            _default_catalog = FormatCatalog()
        return _default_catalog
