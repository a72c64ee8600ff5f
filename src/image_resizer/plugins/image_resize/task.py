"""Image resize task implementation."""

from typing import Callable

from typing_extensions import override

from ...common.compute_module import ComputeModule
from ...pipeline import ImagePipeline
from ...utils.format_catalog import get_content_type
from .schema import ImageResizeOutput, ImageResizeParams


class ImageResizeTask(ComputeModule[ImageResizeParams, ImageResizeOutput]):
    """Compute module for resizing a single image under a resize policy."""

    schema: type[ImageResizeParams] = ImageResizeParams

    @property
    @override
    def task_type(self) -> str:
        return "image_resize"

    @override
    async def run(
        self,
        params: ImageResizeParams,
        progress_callback: Callable[[int], None] | None = None,
    ) -> ImageResizeOutput:
        with ImagePipeline.build(params.input_path) as pipeline:
            resized = pipeline.resize(params.to_policy())
            written = pipeline.save(
                params.output_path,
                image_format=params.format,
                quality=params.quality,
            )
            output = ImageResizeOutput(
                width=resized.width,
                height=resized.height,
                format=written.value,
                mime_type=get_content_type(written),
                resized=not pipeline.result_has_equal_size(),
            )

        if progress_callback:
            progress_callback(100)

        return output
