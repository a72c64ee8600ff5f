"""Load -> resize -> save orchestration with deterministic cleanup."""

import os
from types import TracebackType
from typing import BinaryIO

from loguru import logger

from .algo.encoder import (
    DEFAULT_QUALITY,
    MAX_QUALITY,
    coerce_image_format,
    get_original_format,
    save_image,
)
from .algo.renderer import resize as resize_raster
from .algo.size_policy import compute_target_size
from .algo.source_loader import PillowImageSource, RasterSource, SourceLoader, as_source
from .common.errors import UsageError
from .common.raster import RasterImage
from .common.schemas import ImageFormat, ResizePolicy, TargetSize
from .utils.format_catalog import get_format_catalog


class ImagePipeline:
    """Owns a decoded source raster and the raster resized from it.

    Use ``ImagePipeline.build(source)`` and close the handle (or use it as a
    context manager) to release both rasters and the decode buffer.
    """

    def __init__(self, source_raster: RasterImage):
        if source_raster is None:
            raise UsageError("Source raster must not be None")
        self.source_raster: RasterImage = source_raster
        self.source_path: str | None = source_raster.origin_path
        self.local_source_path: str | None = source_raster.local_path
        self.destination_raster: RasterImage | None = None
        self._disposed: bool = False

    @classmethod
    def build(cls, source: object, loader: SourceLoader | None = None) -> "ImagePipeline":
        """Load a source (path, URL, bytes, stream, raster or PIL image)."""
        loader = loader or SourceLoader()
        return cls(loader.load(source))

    def resize(self, policy: ResizePolicy) -> RasterImage:
        """Resize the source raster, replacing any previous result.

        Returns:
            The destination raster, which is the source raster itself when
            the computed size equals the source size
        """
        self._check_open()
        target = compute_target_size(self.source_raster.width, self.source_raster.height, policy)
        self._release_destination()
        self.destination_raster = resize_raster(self.source_raster, target)
        return self.destination_raster

    @property
    def target_size(self) -> TargetSize | None:
        if self.destination_raster is None:
            return None
        return TargetSize(
            width=self.destination_raster.width, height=self.destination_raster.height
        )

    def result_has_equal_size(self) -> bool:
        if self.destination_raster is None:
            raise UsageError("No resized image yet; call resize() first")
        if self.destination_raster is self.source_raster:
            return True
        return self.destination_raster.size == self.source_raster.size

    def save(
        self,
        destination: str | os.PathLike[str] | BinaryIO | None = None,
        image_format: ImageFormat | str | None = None,
        quality: int | None = None,
    ) -> ImageFormat:
        """Save the resized raster, or the source raster when not resized.

        Args:
            destination: Path or writable stream; None overwrites the source
                file, which is only allowed for rasters read from a local file
            image_format: Output format; inferred from destination, then origin
            quality: 10-100; defaults to 100 when re-encoding a JPEG as JPEG
                and 90 otherwise

        Returns:
            The format written
        """
        self._check_open()
        if destination is None:
            if self.local_source_path is None:
                raise UsageError(
                    "Source was not read from a local file; a destination is required"
                )
            destination = self.local_source_path

        raster = self.destination_raster
        if raster is None:
            raster = self.source_raster
        if image_format is None and isinstance(destination, str | os.PathLike):
            image_format = get_format_catalog().get_image_format_from_path(destination)
        if image_format is None:
            image_format = get_original_format(raster)

        if quality is None:
            quality = self._default_quality(raster, image_format)

        written = save_image(raster, destination, image_format, quality)
        logger.debug(f"Saved {raster.width}x{raster.height} {written} image")
        return written

    def close(self) -> None:
        """Release the source raster and buffer, then the destination raster."""
        if self._disposed:
            return
        self._disposed = True
        try:
            self.source_raster.close()
        finally:
            self._release_destination()

    def __enter__(self) -> "ImagePipeline":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _release_destination(self) -> None:
        destination = self.destination_raster
        self.destination_raster = None
        if destination is not None and destination is not self.source_raster:
            destination.close()

    def _check_open(self) -> None:
        if self._disposed:
            raise UsageError("Pipeline has already been closed")

    @staticmethod
    def _default_quality(raster: RasterImage, image_format: ImageFormat | str | None) -> int:
        if image_format is None:
            return DEFAULT_QUALITY
        if coerce_image_format(image_format) == ImageFormat.JPEG:
            if get_original_format(raster) == ImageFormat.JPEG:
                return MAX_QUALITY
        return DEFAULT_QUALITY


def resize_image(
    source: object,
    destination: str | os.PathLike[str] | BinaryIO,
    policy: ResizePolicy,
    image_format: ImageFormat | str | None = None,
    quality: int | None = None,
    loader: SourceLoader | None = None,
) -> TargetSize:
    """Load, resize and save in one call.

    Returns:
        The size of the saved image
    """
    with ImagePipeline.build(source, loader) as pipeline:
        resized = pipeline.resize(policy)
        _ = pipeline.save(destination, image_format, quality)
        return TargetSize(width=resized.width, height=resized.height)


def calculate_new_size(
    source: object,
    policy: ResizePolicy,
    loader: SourceLoader | None = None,
) -> TargetSize:
    """Compute the size a source would be resized to, without resampling.

    RasterImage and PIL image sources are measured in place. Anything else is
    loaded and released again.
    """
    match as_source(source):
        case RasterSource(raster=raster):
            return compute_target_size(raster.width, raster.height, policy)
        case PillowImageSource(image=image):
            return compute_target_size(image.width, image.height, policy)
        case resolvable:
            raster = (loader or SourceLoader()).load(resolvable)
            try:
                return compute_target_size(raster.width, raster.height, policy)
            finally:
                raster.close()
