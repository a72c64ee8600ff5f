"""In-memory raster wrapper that owns its decode buffer."""

from dataclasses import dataclass, field
from io import BytesIO
from types import TracebackType

from PIL import Image


@dataclass(eq=False)
class RasterImage:
    """Decoded pixel buffer plus where it came from.

    Pillow may keep reading from the buffer an image was opened on, so a
    raster decoded from bytes holds that buffer in ``owned_buffer`` and
    releases it only after the image itself. ``close()`` runs once; later
    calls are no-ops.

    Attributes:
        image: Decoded Pillow image
        origin_path: Path or URL the raster was loaded from, if any
        owned_buffer: Encoded bytes the image was decoded from, if owned
        source_format: Pillow format name of the encoded source, if known
        local_path: Local file the raster was read from; None for URLs,
            bytes and streams
    """

    image: Image.Image
    origin_path: str | None = None
    owned_buffer: BytesIO | None = None
    source_format: str | None = None
    local_path: str | None = None
    _closed: bool = field(default=False, init=False, repr=False)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def mode(self) -> str:
        return self.image.mode

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.image.close()
        finally:
            if self.owned_buffer is not None:
                self.owned_buffer.close()
                self.owned_buffer = None

    def __enter__(self) -> "RasterImage":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
