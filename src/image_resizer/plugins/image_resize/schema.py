"""Image resize parameters schema."""

from typing import Literal

from pydantic import Field

from ...common.schema_job import BaseJobParams, TaskOutput
from ...common.schemas import ResizeMode, ResizePolicy, ScaleMode, StretchMode


class ImageResizeParams(BaseJobParams):
    """Parameters for the image resize task.

    Attributes:
        input_path: Path or http(s) URL of the input image
        output_path: Path of the resized output
        mode: max_sides, one_side or rectangle
        scale_mode: upscale_only, downscale_only, both or none
        stretch_mode: proportional or exact
        width: Requested width bound (0 = unset)
        height: Requested height bound (0 = unset)
        format: Output format (None = inferred from output_path, then input)
        quality: JPEG quality 10-100 (None = 100 for JPEG->JPEG, else 90)
    """

    mode: ResizeMode = ResizeMode.MAX_SIDES
    scale_mode: ScaleMode = ScaleMode.DOWNSCALE_ONLY
    stretch_mode: StretchMode = StretchMode.PROPORTIONAL
    width: int = Field(default=0, ge=0, description="Target width in pixels")
    height: int = Field(default=0, ge=0, description="Target height in pixels")
    format: Literal["jpg", "jpeg", "png", "gif"] | None = None
    quality: int | None = Field(default=None, ge=10, le=100)

    def to_policy(self) -> ResizePolicy:
        return ResizePolicy(
            mode=self.mode,
            scale_mode=self.scale_mode,
            stretch_mode=self.stretch_mode,
            width=self.width,
            height=self.height,
        )


class ImageResizeOutput(TaskOutput):
    width: int
    height: int
    format: str
    mime_type: str
    resized: bool
