"""Resolve heterogeneous image sources into decoded rasters."""

import os
from dataclasses import dataclass
from io import BufferedIOBase, BytesIO, RawIOBase
from typing import BinaryIO, NamedTuple
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx
from loguru import logger
from PIL import Image, UnidentifiedImageError

from ..common.errors import ImageCorruptedError, NetworkError, NotFoundError, UsageError
from ..common.raster import RasterImage

MAX_REDIRECTS = 10
DEFAULT_TIMEOUT = 30.0
NETWORK_SCHEMES = ("http", "https", "ftp")

LOAD_FAILURE_REASONS = (
    "File is not an image, may be corrupted or empty, or may contain a PNG "
    + "image larger than 65,535 pixels"
)

# ─────────────────────────────────────────────────────────────
# Source shapes
# ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PathSource:
    """Local file path or absolute http/https/ftp URL given as text."""

    path: str


@dataclass(frozen=True)
class UriSource:
    uri: httpx.URL


@dataclass(frozen=True)
class BytesSource:
    data: bytes


@dataclass(frozen=True)
class StreamSource:
    """Readable binary stream owned by the caller."""

    stream: BinaryIO


@dataclass(frozen=True)
class RasterSource:
    raster: RasterImage


@dataclass(frozen=True)
class PillowImageSource:
    image: Image.Image


Source = PathSource | UriSource | BytesSource | StreamSource | RasterSource | PillowImageSource


def as_source(value: object) -> Source:
    """Wrap a plain value in the matching Source shape.

    Raises:
        UsageError: If value is None or of an unsupported type
    """
    if value is None:
        raise UsageError("Source must not be None")
    if isinstance(value, Source):
        return value
    if isinstance(value, str):
        return PathSource(value)
    if isinstance(value, os.PathLike):
        return PathSource(os.fspath(value))  # pyright: ignore[reportUnknownArgumentType]
    if isinstance(value, httpx.URL):
        return UriSource(value)
    if isinstance(value, bytes | bytearray | memoryview):
        return BytesSource(bytes(value))
    if isinstance(value, RasterImage):
        return RasterSource(value)
    if isinstance(value, Image.Image):
        return PillowImageSource(value)
    if isinstance(value, BufferedIOBase | RawIOBase) or hasattr(value, "read"):
        return StreamSource(value)  # pyright: ignore[reportArgumentType]
    raise UsageError(
        "Source may only be a path, URL, bytes, binary stream, RasterImage "
        + f"or PIL image, got {type(value).__name__}"
    )


class ResolvedSource(NamedTuple):
    stream: BinaryIO
    path: str | None
    owns_stream: bool
    is_local_file: bool = False


# ─────────────────────────────────────────────────────────────
# Loader
# ─────────────────────────────────────────────────────────────


class SourceLoader:
    """Turns any Source into a RasterImage.

    Streams opened here (files, network bodies, byte buffers) are closed
    after decoding. Streams handed in by the caller are left open.
    """

    def __init__(
        self,
        max_redirects: int = MAX_REDIRECTS,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the loader.

        Args:
            max_redirects: Redirect hops followed before giving up
            timeout: Network timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        if max_redirects < 0:
            raise UsageError("max_redirects must be >= 0")
        self.max_redirects: int = max_redirects
        self.timeout: float = timeout
        self.transport: httpx.BaseTransport | None = transport

    def load(self, source: Source | object) -> RasterImage:
        """Load and decode a source.

        Returns:
            The same RasterImage for RasterSource, a pixel copy for a PIL
            image, otherwise a freshly decoded raster owning its buffer.
        """
        match as_source(source):
            case RasterSource(raster=raster):
                return raster
            case PillowImageSource(image=image):
                # Pixels only; format, info and metadata are not carried over.
                clone = image.copy()
                clone.info = {}
                return RasterImage(image=clone)
            case resolvable:
                resolved = self.resolve(resolvable)
                try:
                    return self.decode(
                        resolved.stream,
                        resolved.path,
                        local_path=resolved.path if resolved.is_local_file else None,
                    )
                finally:
                    if resolved.owns_stream:
                        resolved.stream.close()

    def resolve(self, source: Source | object) -> ResolvedSource:
        """Open a readable byte stream for a path, URI, bytes or stream source.

        Raises:
            UsageError: For raster sources, which have no byte stream
            NotFoundError: If a local file does not exist
            NetworkError: If a remote fetch fails
        """
        match as_source(source):
            case PathSource(path=path):
                if _is_network_url(path):
                    return ResolvedSource(self._fetch(path), path, True)
                if os.path.isfile(path):
                    return ResolvedSource(open(path, "rb"), path, True, True)
                raise NotFoundError(
                    f"Source is neither a reachable URL nor an existing file: {path}"
                )

            case UriSource(uri=uri):
                if uri.scheme == "file":
                    local_path = _file_uri_to_path(uri)
                    if not os.path.isfile(local_path):
                        raise NotFoundError(f"File not found: {local_path}")
                    return ResolvedSource(open(local_path, "rb"), local_path, True, True)
                return ResolvedSource(self._fetch(uri), uri.path, True)

            case BytesSource(data=data):
                return ResolvedSource(BytesIO(data), None, True)

            case StreamSource(stream=stream):
                return ResolvedSource(stream, None, False)

            case _:
                raise UsageError("Decoded rasters do not need resolving")

    def decode(
        self,
        stream: BinaryIO,
        path: str | None = None,
        local_path: str | None = None,
    ) -> RasterImage:
        """Buffer the remaining stream contents and decode them.

        The buffer is handed to the returned raster, which closes it together
        with the image.
        ``local_path`` is set only for sources read from a local file.

        Raises:
            UsageError: If the stream holds no bytes
            ImageCorruptedError: If Pillow cannot decode the bytes
        """
        buffer = BytesIO(stream.read())
        if buffer.getbuffer().nbytes == 0:
            buffer.close()
            raise UsageError(
                "Source stream is empty; it has a length of 0. No bytes, no data."
            )

        try:
            image = Image.open(buffer)
            image.load()
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            EOFError,
            OSError,
            SyntaxError,
            ValueError,
        ) as exc:
            buffer.close()
            raise ImageCorruptedError(LOAD_FAILURE_REASONS) from exc

        logger.debug(f"Decoded {image.format} {image.width}x{image.height} from {path or 'stream'}")
        return RasterImage(
            image=image,
            origin_path=path,
            owned_buffer=buffer,
            source_format=image.format,
            local_path=local_path,
        )

    def _fetch(self, url: httpx.URL | str) -> BytesIO:
        try:
            url = httpx.URL(url)
            with httpx.Client(
                transport=self.transport,
                follow_redirects=False,
                timeout=self.timeout,
            ) as client:
                for _ in range(self.max_redirects + 1):
                    response = client.get(url)
                    if not 300 <= response.status_code <= 399:
                        break
                    location = response.headers.get("Location")
                    if not location:
                        raise NetworkError(
                            f"Redirect without Location header from {url}",
                            safe_message="Remote image could not be fetched",
                        )
                    next_url = url.join(location)
                    logger.debug(f"Following redirect {response.status_code}: {url} -> {next_url}")
                    url = next_url
                else:
                    logger.error(f"Too many redirects while fetching {url}")
                    raise NetworkError(
                        f"Exceeded {self.max_redirects} redirects while fetching {url}",
                        safe_message="Remote image could not be fetched",
                    )

                _ = response.raise_for_status()
                return BytesIO(response.content)

        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error(f"Failed to fetch image from {url}: {exc}")
            raise NetworkError(
                f"Failed to fetch image from {url}: {exc}",
                safe_message="Remote image could not be fetched",
            ) from exc


def _is_network_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme.lower() in NETWORK_SCHEMES and bool(parts.netloc)


def _file_uri_to_path(uri: httpx.URL) -> str:
    return url2pathname(uri.path)
