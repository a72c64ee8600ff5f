"""Size computation, loading, resampling and encoding."""

from .encoder import ImageEncoder, save_image
from .renderer import render, resize
from .size_policy import compute_target_size
from .source_loader import SourceLoader

__all__ = ["ImageEncoder", "SourceLoader", "compute_target_size", "render", "resize", "save_image"]
