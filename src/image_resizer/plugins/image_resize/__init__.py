"""Image resize plugin."""

from .schema import ImageResizeOutput, ImageResizeParams
from .task import ImageResizeTask

__all__ = ["ImageResizeTask", "ImageResizeParams", "ImageResizeOutput"]
