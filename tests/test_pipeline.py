"""Integration tests for the load -> resize -> save pipeline."""

from collections.abc import Callable, Mapping
from io import BytesIO
from pathlib import Path

import httpx
import pytest
from PIL import Image

from image_resizer.algo.source_loader import SourceLoader
from image_resizer.common.errors import EncodeError, NotFoundError, UsageError
from image_resizer.common.raster import RasterImage
from image_resizer.common.schemas import (
    ImageFormat,
    ImageSize,
    ResizeMode,
    ResizePolicy,
    ScaleMode,
    TargetSize,
)
from image_resizer.pipeline import ImagePipeline, calculate_new_size, resize_image

TransportFactory = Callable[[Mapping[str, tuple[int, dict[str, str], bytes]]], httpx.MockTransport]

HALF = ResizePolicy(scale_mode=ScaleMode.BOTH, width=400, height=400)


# ============================================================================
# BUILD AND RESIZE
# ============================================================================


def test_build_from_path(synthetic_image: Path):
    with ImagePipeline.build(synthetic_image) as pipeline:
        assert pipeline.source_raster.size == (800, 600)
        assert pipeline.source_path == str(synthetic_image)
        assert pipeline.destination_raster is None


def test_build_missing_file(tmp_path: Path):
    with pytest.raises(NotFoundError):
        _ = ImagePipeline.build(tmp_path / "nope.jpg")


def test_resize_produces_destination(synthetic_image: Path):
    with ImagePipeline.build(synthetic_image) as pipeline:
        resized = pipeline.resize(HALF)

        assert resized is pipeline.destination_raster
        assert resized.size == (400, 300)
        assert pipeline.target_size == TargetSize(width=400, height=300)
        assert not pipeline.result_has_equal_size()


def test_equal_size_resize_aliases_source(synthetic_image: Path):
    with ImagePipeline.build(synthetic_image) as pipeline:
        resized = pipeline.resize(ResizePolicy(scale_mode=ScaleMode.NONE))

        assert resized is pipeline.source_raster
        assert pipeline.result_has_equal_size()


def test_result_has_equal_size_requires_resize(synthetic_image: Path):
    with ImagePipeline.build(synthetic_image) as pipeline:
        with pytest.raises(UsageError):
            _ = pipeline.result_has_equal_size()


def test_second_resize_releases_previous_destination(synthetic_image: Path):
    with ImagePipeline.build(synthetic_image) as pipeline:
        first = pipeline.resize(HALF)
        second = pipeline.resize(
            ResizePolicy(mode=ResizeMode.ONE_SIDE, scale_mode=ScaleMode.BOTH, width=200)
        )

        assert first.closed
        assert not second.closed
        assert second.size == (200, 150)


def test_resize_after_alias_keeps_source_open(synthetic_image: Path):
    with ImagePipeline.build(synthetic_image) as pipeline:
        _ = pipeline.resize(ResizePolicy(scale_mode=ScaleMode.NONE))
        resized = pipeline.resize(HALF)

        assert not pipeline.source_raster.closed
        assert resized.size == (400, 300)


def test_invalid_policy_keeps_previous_destination(synthetic_image: Path):
    with ImagePipeline.build(synthetic_image) as pipeline:
        first = pipeline.resize(HALF)
        with pytest.raises(UsageError):
            _ = pipeline.resize(ResizePolicy(mode=ResizeMode.ONE_SIDE))

        assert pipeline.destination_raster is first
        assert not first.closed


# ============================================================================
# DISPOSAL
# ============================================================================


def test_close_releases_everything(synthetic_image: Path):
    pipeline = ImagePipeline.build(synthetic_image)
    source = pipeline.source_raster
    buffer = source.owned_buffer
    destination = pipeline.resize(HALF)

    pipeline.close()

    assert source.closed
    assert buffer is not None and buffer.closed
    assert destination.closed
    assert pipeline.destination_raster is None


def test_close_is_idempotent(synthetic_image: Path):
    pipeline = ImagePipeline.build(synthetic_image)
    _ = pipeline.resize(ResizePolicy(scale_mode=ScaleMode.NONE))

    pipeline.close()
    pipeline.close()

    assert pipeline.source_raster.closed


def test_close_releases_in_order(monkeypatch: pytest.MonkeyPatch, synthetic_image: Path):
    released: list[str] = []
    original_close = RasterImage.close

    def recording_close(self: RasterImage) -> None:
        released.append("source" if self.owned_buffer is not None else "destination")
        original_close(self)

    with ImagePipeline.build(synthetic_image) as pipeline:
        _ = pipeline.resize(HALF)
        monkeypatch.setattr(RasterImage, "close", recording_close)

    assert released == ["source", "destination"]


def test_closed_pipeline_rejects_work(synthetic_image: Path):
    pipeline = ImagePipeline.build(synthetic_image)
    pipeline.close()

    with pytest.raises(UsageError):
        _ = pipeline.resize(HALF)
    with pytest.raises(UsageError):
        _ = pipeline.save(BytesIO(), "png")


def test_build_rejects_none():
    with pytest.raises(UsageError):
        _ = ImagePipeline.build(None)


# ============================================================================
# SAVE
# ============================================================================


def test_save_resized_to_path(synthetic_image: Path, temp_output_dir: Path):
    destination = temp_output_dir / "small.png"
    with ImagePipeline.build(synthetic_image) as pipeline:
        _ = pipeline.resize(HALF)
        written = pipeline.save(destination)

    assert written == ImageFormat.PNG
    with Image.open(destination) as saved:
        assert saved.size == (400, 300)
        assert saved.format == "PNG"


def test_save_without_resize_writes_source(synthetic_image: Path):
    buffer = BytesIO()
    with ImagePipeline.build(synthetic_image) as pipeline:
        written = pipeline.save(buffer)

    assert written == ImageFormat.JPEG
    _ = buffer.seek(0)
    with Image.open(buffer) as saved:
        assert saved.size == (800, 600)


def test_save_stream_infers_format_from_origin(portrait_png: Path):
    buffer = BytesIO()
    with ImagePipeline.build(portrait_png) as pipeline:
        _ = pipeline.resize(ResizePolicy(scale_mode=ScaleMode.BOTH, width=320, height=320))
        _ = pipeline.save(buffer)

    _ = buffer.seek(0)
    with Image.open(buffer) as saved:
        assert saved.format == "PNG"
        assert saved.size == (240, 320)


def test_save_over_source_path(tmp_path: Path):
    path = tmp_path / "inplace.png"
    Image.new("RGB", (200, 100)).save(path)

    with ImagePipeline.build(path) as pipeline:
        _ = pipeline.resize(ResizePolicy(scale_mode=ScaleMode.BOTH, width=100, height=100))
        _ = pipeline.save()

    with Image.open(path) as saved:
        assert saved.size == (100, 50)


def test_save_without_destination_or_source_path(png_bytes: bytes):
    with ImagePipeline.build(png_bytes) as pipeline:
        with pytest.raises(UsageError):
            _ = pipeline.save()


def test_local_source_path_tracks_files_only(synthetic_image: Path, png_bytes: bytes):
    with ImagePipeline.build(synthetic_image) as pipeline:
        assert pipeline.local_source_path == str(synthetic_image)
    with ImagePipeline.build(httpx.URL(synthetic_image.as_uri())) as pipeline:
        assert pipeline.local_source_path == str(synthetic_image)
    with ImagePipeline.build(png_bytes) as pipeline:
        assert pipeline.local_source_path is None


@pytest.mark.network
@pytest.mark.parametrize(
    "source", ["https://img.example.com/a.png", httpx.URL("https://img.example.com/a.png")]
)
def test_save_without_destination_rejects_remote_source(
    source: object,
    mock_transport_factory: TransportFactory,
    png_bytes: bytes,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
):
    monkeypatch.chdir(tmp_path)
    transport = mock_transport_factory({"https://img.example.com/a.png": (200, {}, png_bytes)})

    with ImagePipeline.build(source, SourceLoader(transport=transport)) as pipeline:
        assert pipeline.source_path is not None
        assert pipeline.local_source_path is None
        _ = pipeline.resize(ResizePolicy(scale_mode=ScaleMode.BOTH, width=100, height=100))
        with pytest.raises(UsageError):
            _ = pipeline.save()

    assert list(tmp_path.iterdir()) == []


def test_sixteen_bit_png_saves_as_jpeg(gray16_png: Path, temp_output_dir: Path):
    output_path = temp_output_dir / "gray16.jpg"

    with ImagePipeline.build(gray16_png) as pipeline:
        _ = pipeline.resize(ResizePolicy(scale_mode=ScaleMode.BOTH, width=80, height=80))
        assert pipeline.save(output_path) == ImageFormat.JPEG

    with Image.open(output_path) as saved:
        assert saved.format == "JPEG"
        assert saved.mode == "L"
        assert saved.size == (80, 60)
        assert abs(saved.getpixel((40, 30)) - 0xC8) <= 3  # pyright: ignore[reportOperatorIssue]



def test_save_without_resolvable_format():
    image = Image.new("RGB", (10, 10))
    with ImagePipeline.build(image) as pipeline:
        with pytest.raises(EncodeError):
            _ = pipeline.save(BytesIO())


def test_jpeg_to_jpeg_defaults_to_max_quality(
    monkeypatch: pytest.MonkeyPatch, synthetic_image: Path, temp_output_dir: Path
):
    seen: list[int] = []

    def recording_save(raster, destination, image_format=None, quality=90):  # pyright: ignore
        seen.append(quality)
        return ImageFormat.JPEG

    monkeypatch.setattr("image_resizer.pipeline.save_image", recording_save)

    with ImagePipeline.build(synthetic_image) as pipeline:
        _ = pipeline.save(temp_output_dir / "a.jpg")
        _ = pipeline.save(temp_output_dir / "b.png")
        _ = pipeline.save(temp_output_dir / "c.jpg", quality=55)

    assert seen == [100, 90, 55]


def test_png_to_jpeg_defaults_to_ninety(
    monkeypatch: pytest.MonkeyPatch, portrait_png: Path, temp_output_dir: Path
):
    seen: list[int] = []

    def recording_save(raster, destination, image_format=None, quality=90):  # pyright: ignore
        seen.append(quality)
        return ImageFormat.JPEG

    monkeypatch.setattr("image_resizer.pipeline.save_image", recording_save)

    with ImagePipeline.build(portrait_png) as pipeline:
        _ = pipeline.save(temp_output_dir / "a.jpg")

    assert seen == [90]


def test_save_failure_leaves_no_file(
    monkeypatch: pytest.MonkeyPatch, synthetic_image: Path, temp_output_dir: Path
):
    destination = temp_output_dir / "broken.jpg"

    def failing_save_jpeg(image: Image.Image, stream: BytesIO, quality: int) -> None:
        _ = stream.write(b"\xff\xd8\xff\xe0")
        raise OSError("encoder crashed")

    monkeypatch.setattr("image_resizer.algo.encoder.save_jpeg", failing_save_jpeg)

    with ImagePipeline.build(synthetic_image) as pipeline:
        _ = pipeline.resize(HALF)
        with pytest.raises(EncodeError):
            _ = pipeline.save(destination)

    assert not destination.exists()


# ============================================================================
# ROUND TRIPS AND HELPERS
# ============================================================================


@pytest.mark.parametrize("image_format", ["png", "gif"])
def test_lossless_round_trip_keeps_dimensions(png_bytes: bytes, image_format: str):
    encoded = BytesIO()
    with ImagePipeline.build(png_bytes) as pipeline:
        _ = pipeline.save(encoded, image_format)
        original_size = pipeline.source_raster.size

    with ImagePipeline.build(encoded.getvalue()) as reloaded:
        assert reloaded.source_raster.size == original_size


def test_raster_source_is_owned_by_pipeline():
    raster = RasterImage(image=Image.new("RGB", (50, 50)))
    with ImagePipeline.build(raster) as pipeline:
        assert pipeline.source_raster is raster
    assert raster.closed


def test_resize_image_one_shot(synthetic_image: Path, temp_output_dir: Path):
    destination = temp_output_dir / "thumb.gif"

    target = resize_image(
        synthetic_image,
        destination,
        ResizePolicy.from_size(ImageSize.get_default_or_create(80, 80), scale_mode=ScaleMode.BOTH),
    )

    assert target == TargetSize(width=80, height=60)
    with Image.open(destination) as saved:
        assert saved.format == "GIF"
        assert saved.size == (80, 60)


def test_calculate_new_size_from_path_releases_raster(
    monkeypatch: pytest.MonkeyPatch, synthetic_image: Path
):
    loaded: list[RasterImage] = []
    original_load = SourceLoader.load

    def recording_load(self: SourceLoader, source: object) -> RasterImage:
        raster = original_load(self, source)
        loaded.append(raster)
        return raster

    monkeypatch.setattr(SourceLoader, "load", recording_load)

    target = calculate_new_size(str(synthetic_image), HALF)

    assert target == TargetSize(width=400, height=300)
    assert loaded[0].closed


def test_calculate_new_size_leaves_caller_raster_open():
    raster = RasterImage(image=Image.new("RGB", (4000, 3000)))
    target = calculate_new_size(raster, ResizePolicy(scale_mode=ScaleMode.BOTH, width=800, height=800))

    assert target == TargetSize(width=800, height=600)
    assert not raster.closed


def test_calculate_new_size_for_pil_image():
    image = Image.new("RGB", (480, 640))
    target = calculate_new_size(
        image, ResizePolicy(mode=ResizeMode.ONE_SIDE, scale_mode=ScaleMode.BOTH, height=320)
    )
    assert target == TargetSize(width=240, height=320)
