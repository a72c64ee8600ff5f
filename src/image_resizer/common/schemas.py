"""Pydantic schemas for resize policies, target sizes and format metadata."""

from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

# ─────────────────────────────────────────────────────────────
# Policy enums
# ─────────────────────────────────────────────────────────────


class ResizeMode(StrEnum):
    MAX_SIDES = "max_sides"
    ONE_SIDE = "one_side"
    RECTANGLE = "rectangle"


class ScaleMode(StrEnum):
    UPSCALE_ONLY = "upscale_only"
    DOWNSCALE_ONLY = "downscale_only"
    BOTH = "both"
    NONE = "none"


class StretchMode(StrEnum):
    PROPORTIONAL = "proportional"
    EXACT = "exact"


class ImageFormat(StrEnum):
    """Container formats known to the catalog. Values are Pillow format names."""

    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    BMP = "BMP"
    TIFF = "TIFF"


# ─────────────────────────────────────────────────────────────
# Preset sizes
# ─────────────────────────────────────────────────────────────


class ImageSize(BaseModel):
    """A named width/height pair. Presets carry ids 1-5, ad-hoc sizes id 0."""

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    id: int = 0

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def description(self) -> str:
        return f"{self.width}x{self.height}"

    @classmethod
    def get_default_sizes(cls) -> list["ImageSize"]:
        return list(_DEFAULT_SIZES)

    @classmethod
    def get_default_or_create(cls, width: int, height: int) -> "ImageSize":
        for size in _DEFAULT_SIZES:
            if size.width == width and size.height == height:
                return size
        return cls(width=width, height=height, id=0)


_DEFAULT_SIZES: tuple[ImageSize, ...] = (
    ImageSize(width=640, height=480, id=1),
    ImageSize(width=800, height=600, id=2),
    ImageSize(width=1024, height=768, id=3),
    ImageSize(width=1280, height=960, id=4),
    ImageSize(width=1920, height=1080, id=5),
)


# ─────────────────────────────────────────────────────────────
# Resize policy
# ─────────────────────────────────────────────────────────────


class ResizePolicy(BaseModel):
    """Declarative description of how a source should be resized.

    Attributes:
        mode: Which bounds the width/height fields express
        scale_mode: Whether the computed factor may grow and/or shrink the source
        stretch_mode: Preserve source aspect ratio or map to the box exactly
        width: Requested width bound in pixels (0 = unset)
        height: Requested height bound in pixels (0 = unset)
    """

    mode: ResizeMode = ResizeMode.MAX_SIDES
    scale_mode: ScaleMode = ScaleMode.DOWNSCALE_ONLY
    stretch_mode: StretchMode = StretchMode.PROPORTIONAL
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)

    @classmethod
    def from_size(cls, size: ImageSize, **overrides: object) -> "ResizePolicy":
        return cls.model_validate({"width": size.width, "height": size.height, **overrides})

    def compare_sides(self) -> tuple[int, int]:
        """Return ``(small_side, big_side)`` of the requested bounds."""
        if self.height > self.width:
            return self.width, self.height
        return self.height, self.width


# ─────────────────────────────────────────────────────────────
# Derived values
# ─────────────────────────────────────────────────────────────


class TargetSize(BaseModel):
    """Resolved output dimensions."""

    width: int = Field(gt=0)
    height: int = Field(gt=0)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    def as_tuple(self) -> tuple[int, int]:
        return (self.width, self.height)


class FormatEntry(BaseModel):
    extension: str
    image_format: ImageFormat
    mime_type: str

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class FileSignature(BaseModel):
    """Leading byte pattern identifying a file type."""

    signature: bytes
    extension: str
    mime_type: str

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    def matches(self, data: bytes) -> bool:
        return data.startswith(self.signature)
