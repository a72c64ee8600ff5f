"""image_resizer - Policy-driven image resizing on top of Pillow."""

from .algo.encoder import ImageEncoder, save_image
from .algo.size_policy import compute_target_size
from .algo.source_loader import (
    BytesSource,
    PathSource,
    PillowImageSource,
    RasterSource,
    Source,
    SourceLoader,
    StreamSource,
    UriSource,
)
from .common.compute_module import ComputeModule
from .common.errors import (
    EncodeError,
    ImageCorruptedError,
    ImageProcessingError,
    NetworkError,
    NotFoundError,
    UsageError,
)
from .common.raster import RasterImage
from .common.schema_job import BaseJobParams, TaskOutput
from .common.schema_job_record import JobRecord, JobRecordUpdate, JobStatus
from .common.schemas import (
    ImageFormat,
    ImageSize,
    ResizeMode,
    ResizePolicy,
    ScaleMode,
    StretchMode,
    TargetSize,
)
from .pipeline import ImagePipeline, calculate_new_size, resize_image
from .utils.format_catalog import FormatCatalog, get_format_catalog

__version__ = "0.1.0"

__all__ = [
    "BaseJobParams",
    "BytesSource",
    "ComputeModule",
    "EncodeError",
    "FormatCatalog",
    "ImageCorruptedError",
    "ImageEncoder",
    "ImageFormat",
    "ImagePipeline",
    "ImageProcessingError",
    "ImageSize",
    "JobRecord",
    "JobRecordUpdate",
    "JobStatus",
    "NetworkError",
    "NotFoundError",
    "PathSource",
    "PillowImageSource",
    "RasterImage",
    "RasterSource",
    "ResizeMode",
    "ResizePolicy",
    "ScaleMode",
    "Source",
    "SourceLoader",
    "StreamSource",
    "StretchMode",
    "TargetSize",
    "TaskOutput",
    "UriSource",
    "UsageError",
    "__version__",
    "calculate_new_size",
    "compute_target_size",
    "get_format_catalog",
    "resize_image",
    "save_image",
]
