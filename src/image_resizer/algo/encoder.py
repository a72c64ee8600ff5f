"""Raster serialization to files and streams."""

import os
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

from loguru import logger
from PIL import Image

from ..common.errors import EncodeError, ImageProcessingError, UsageError
from ..common.raster import RasterImage
from ..common.schemas import ImageFormat
from ..utils.format_catalog import get_content_type, get_format_catalog

MIN_QUALITY = 10
MAX_QUALITY = 100
DEFAULT_QUALITY = 90

OUTPUT_FORMATS: tuple[ImageFormat, ...] = (ImageFormat.JPEG, ImageFormat.PNG, ImageFormat.GIF)
JPEG_MODES = ("1", "L", "RGB", "CMYK")


def validate_quality(quality: int) -> int:
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise UsageError(
            f"Image quality must be in the range {MIN_QUALITY} - {MAX_QUALITY}, got {quality}"
        )
    return quality


def coerce_image_format(value: ImageFormat | str) -> ImageFormat:
    """Accept a format name (JPEG) or a registered extension (jpg)."""
    try:
        return ImageFormat(str(value).upper())
    except ValueError:
        pass
    image_format = get_format_catalog().get_image_format_from_extension(str(value))
    if image_format is None:
        raise EncodeError(f"{value} is not a supported image format")
    return image_format


class ImageEncoder:
    """Writes JPEG, PNG and GIF output.

    JPEG compression is adjustable through ``quality``. PNG and GIF ignore it,
    but the quality range is validated for every format. No indexed PNG or
    quantized GIF output.
    """

    def __init__(
        self,
        output_format: ImageFormat | str = ImageFormat.JPEG,
        quality: int = DEFAULT_QUALITY,
    ):
        image_format = coerce_image_format(output_format)
        if image_format not in OUTPUT_FORMATS:
            raise EncodeError(f"{image_format} is not a supported output format")

        self.output_format: ImageFormat = image_format
        self.quality: int = validate_quality(quality)

    @property
    def mime_type(self) -> str:
        return get_content_type(self.output_format)

    @property
    def extension(self) -> str | None:
        return get_format_catalog().get_extension_from_image_format(self.output_format)

    @property
    def supports_transparency(self) -> bool:
        return self.output_format in (ImageFormat.PNG, ImageFormat.GIF)

    def write(self, image: Image.Image, stream: BinaryIO) -> None:
        """Encode ``image`` into ``stream``.

        Raises:
            EncodeError: If Pillow fails to encode
        """
        try:
            match self.output_format:
                case ImageFormat.JPEG:
                    save_jpeg(image, stream, self.quality)
                case ImageFormat.PNG:
                    save_png(image, stream)
                case ImageFormat.GIF:
                    save_gif(image, stream)
                case _:
                    raise EncodeError(f"No image encoder for {self.output_format}")
        except ImageProcessingError:
            raise
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"Failed to encode {self.output_format}: {exc}") from exc


def to_jpeg_mode(image: Image.Image) -> Image.Image:
    """Convert a mode JPEG cannot store to L (single channel) or RGB."""
    if image.mode in JPEG_MODES:
        return image
    if image.mode == "I" or image.mode.startswith("I;16"):
        image = image.convert("I")
        _, high = image.getextrema()
        # 16-bit samples: keep the high byte
        if high > 255:  # pyright: ignore[reportOperatorIssue]
            image = image.point(lambda v: v * (1 / 256))
        return image.convert("L")
    if image.mode == "F":
        return image.convert("L")
    return image.convert("RGB")


def save_jpeg(image: Image.Image, stream: BinaryIO, quality: int) -> None:
    image = to_jpeg_mode(image)

    if quality == MAX_QUALITY:
        image.save(stream, format="JPEG", quality=MAX_QUALITY, subsampling=0)
    else:
        image.save(stream, format="JPEG", quality=quality)


def save_png(image: Image.Image, stream: BinaryIO) -> None:
    """Save as PNG, buffering in memory first when the sink cannot seek."""
    if not _is_seekable(stream):
        with BytesIO() as buffer:
            image.save(buffer, format="PNG")
            _ = stream.write(buffer.getvalue())
        return
    image.save(stream, format="PNG")


def save_gif(image: Image.Image, stream: BinaryIO) -> None:
    image.save(stream, format="GIF")


def get_original_format(raster: RasterImage) -> ImageFormat | None:
    """Guess the format a raster was loaded as: origin extension first, then decoder."""
    if raster.origin_path:
        image_format = get_format_catalog().get_image_format_from_path(raster.origin_path)
        if image_format is not None:
            return image_format
    if raster.source_format:
        try:
            return ImageFormat(raster.source_format)
        except ValueError:
            return None
    return None


def save_image(
    raster: RasterImage,
    destination: str | os.PathLike[str] | BinaryIO,
    image_format: ImageFormat | str | None = None,
    quality: int = DEFAULT_QUALITY,
) -> ImageFormat:
    """
    Save a raster to a file path or a writable stream.

    Format inference when ``image_format`` is None: destination extension,
    then the raster's original format.

    Args:
        raster: Raster to encode
        destination: File path or writable binary stream
        image_format: Output format (jpeg, png, gif)
        quality: JPEG quality, 10-100 (validated for every format)

    Returns:
        The format actually written

    Raises:
        UsageError: If quality is out of range or destination has the wrong type
        EncodeError: If no format could be determined or encoding fails
    """
    if raster is None:
        raise UsageError("Raster must not be None")
    _ = validate_quality(quality)

    is_path = isinstance(destination, str | os.PathLike)
    if image_format is None and is_path:
        image_format = get_format_catalog().get_image_format_from_path(destination)
    if image_format is None:
        image_format = get_original_format(raster)
    if image_format is None:
        raise EncodeError("Could not determine the output image format")

    encoder = ImageEncoder(image_format, quality)

    if is_path:
        _write_file(encoder, raster.image, Path(destination))
    elif hasattr(destination, "write"):
        encoder.write(raster.image, destination)  # pyright: ignore[reportArgumentType]
    else:
        raise UsageError(
            f"Destination may be a path or a writable stream, got {type(destination).__name__}"
        )

    return encoder.output_format


def _write_file(encoder: ImageEncoder, image: Image.Image, path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        f = open(path, "wb")
    except OSError as exc:
        raise EncodeError(f"Cannot open {path} for writing: {exc}") from exc

    finished_write = False
    try:
        with f:
            encoder.write(image, f)
            f.flush()
        finished_write = True
    finally:
        # Don't leave half-written files around.
        if not finished_write:
            logger.error(f"Failed to write {path}, removing partial output")
            path.unlink(missing_ok=True)


def _is_seekable(stream: BinaryIO) -> bool:
    seekable = getattr(stream, "seekable", None)
    return bool(seekable()) if callable(seekable) else False
