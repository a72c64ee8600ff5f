"""Test configuration and fixtures for image_resizer.

This module provides:
- Pytest configuration (markers)
- Function-scoped fixtures (temp dirs, synthetic images on disk and in memory)
- An httpx MockTransport factory for network loading tests
"""

from collections.abc import Callable, Mapping
from io import BytesIO
from pathlib import Path

import httpx
import numpy as np
import pytest
from PIL import Image, ImageDraw

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "network: exercises the HTTP fetch path through an httpx MockTransport",
    )


# ============================================================================
# Helpers
# ============================================================================

Route = tuple[int, dict[str, str], bytes]



def make_image(width: int, height: int) -> Image.Image:
    """Create a patterned RGB image so lossy encoders have detail to work on."""
    img = Image.new("RGB", (width, height), color=(73, 109, 137))
    draw = ImageDraw.Draw(img)
    for i in range(0, width, 25):
        draw.line([(i, 0), (i, height)], fill=(255, 255, 255), width=2)
    draw.ellipse(
        [width // 4, height // 4, 3 * width // 4, 3 * height // 4],
        fill=(200, 100, 100),
    )
    return img


def encode(image: Image.Image, image_format: str, **kwargs: object) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=image_format, **kwargs)
    return buffer.getvalue()


# ============================================================================
# Function-Scoped Fixtures (Run Per Test)
# ============================================================================


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    """Provide clean temporary directory for test outputs."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def synthetic_image(tmp_path: Path) -> Path:
    """Generate an 800x600 landscape JPEG on disk."""
    output_path = tmp_path / "synthetic.jpg"
    make_image(800, 600).save(output_path, "JPEG", quality=85)
    return output_path


@pytest.fixture
def portrait_png(tmp_path: Path) -> Path:
    """Generate a 480x640 portrait PNG on disk."""
    output_path = tmp_path / "portrait.png"
    make_image(480, 640).save(output_path, "PNG")
    return output_path


@pytest.fixture
def png_bytes() -> bytes:
    return encode(make_image(320, 200), "PNG")


@pytest.fixture
def noisy_image() -> Image.Image:
    """Random-noise RGB image; JPEG size depends strongly on quality."""
    rng = np.random.default_rng(seed=42)
    pixels = rng.integers(0, 256, size=(240, 320, 3), dtype=np.uint8)
    return Image.fromarray(pixels)


@pytest.fixture
def gray16_png(tmp_path: Path) -> Path:
    """Generate a 16-bit grayscale 160x120 PNG, uniform at 0xC800."""
    output_path = tmp_path / "gray16.png"
    pixels = np.full((120, 160), 0xC800, dtype=np.uint16)
    Image.fromarray(pixels).save(output_path, "PNG")
    return output_path


@pytest.fixture
def mock_transport_factory() -> Callable[[Mapping[str, Route]], httpx.MockTransport]:
    """Build a MockTransport serving canned responses keyed by URL.

    Each route is ``(status_code, headers, body)``. Unknown URLs get a 404.
    Every request is recorded on ``transport.requests``.
    """

    def factory(routes: Mapping[str, Route]) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            route = routes.get(str(request.url))
            if route is None:
                return httpx.Response(404)
            status_code, headers, body = route
            return httpx.Response(status_code, headers=headers, content=body)

        transport = httpx.MockTransport(handler)
        transport.requests = requests  # pyright: ignore[reportAttributeAccessIssue]
        return transport

    return factory
