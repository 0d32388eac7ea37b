import base64
import io

import pytest
from PIL import Image

from backend.config import AppConfig
from backend.image_generator import BedrockImageGenerator
from fakes import FakeBedrockRuntime


@pytest.fixture
def fake_client():
    return FakeBedrockRuntime()


@pytest.fixture
def generator(fake_client):
    return BedrockImageGenerator(AppConfig(region="us-west-2"), client=fake_client)


def _encode_image(fmt, mode="RGB", size=(8, 8)):
    img = Image.new(mode, size, (255, 0, 0, 128) if mode == "RGBA" else (255, 0, 0))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture
def encode_image():
    """Base64 encoded solid test image in the given Pillow format."""
    return _encode_image
