"""High-quality raster resampling."""

from loguru import logger
from PIL import Image

from ..common.raster import RasterImage
from ..common.schemas import ResizePolicy, TargetSize
from .size_policy import compute_target_size


def resize(raster: RasterImage, target: TargetSize) -> RasterImage:
    """
    Resample a raster to the target size.

    When the target equals the current size the SAME raster instance is
    returned; callers must not assume every call allocates.

    Args:
        raster: Source raster (left untouched)
        target: Resolved output dimensions

    Returns:
        Resized raster sharing the source's origin path and format
    """
    if raster.size == target.as_tuple():
        logger.debug(f"Target size equals source size {raster.size}, skipping resample")
        return raster

    resized = raster.image.resize(target.as_tuple(), Image.Resampling.LANCZOS)
    dpi = raster.image.info.get("dpi")
    if dpi is not None:
        resized.info["dpi"] = dpi

    return RasterImage(
        image=resized,
        origin_path=raster.origin_path,
        source_format=raster.source_format,
        local_path=raster.local_path,
    )


def render(raster: RasterImage, policy: ResizePolicy) -> RasterImage:
    """Compute the target size for a policy and resample to it."""
    target = compute_target_size(raster.width, raster.height, policy)
    return resize(raster, target)
