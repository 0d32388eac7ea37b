import base64
import io

import pytest
from PIL import Image

from backend.errors import InvalidInputImageError
from backend.image_input import normalize_input_image


def test_no_image():
    assert normalize_input_image(None) is None
    assert normalize_input_image("") is None
    assert normalize_input_image("data:image/png;base64,") is None


def test_png_data_url_is_stripped(encode_image):
    png = encode_image("PNG")
    assert normalize_input_image(f"data:image/png;base64,{png}") == png


def test_bare_jpeg_passes_through(encode_image):
    jpeg = encode_image("JPEG")
    assert normalize_input_image(jpeg) == jpeg


def test_webp_converted_to_png(encode_image):
    webp = encode_image("WEBP", mode="RGBA")
    result = normalize_input_image(f"data:image/webp;base64,{webp}")

    with Image.open(io.BytesIO(base64.b64decode(result))) as img:
        assert img.format == "PNG"
        assert img.mode == "RGB"
        assert img.size == (8, 8)


def test_rejects_invalid_base64():
    with pytest.raises(InvalidInputImageError):
        normalize_input_image("data:image/png;base64,not base64!!")


def test_rejects_non_image_bytes():
    with pytest.raises(InvalidInputImageError):
        normalize_input_image(base64.b64encode(b"just some text").decode("ascii"))


def test_rejects_unsupported_format(encode_image):
    gif = encode_image("GIF")
    with pytest.raises(InvalidInputImageError, match="gif"):
        normalize_input_image(gif)


def test_rejects_oversized_image(encode_image, monkeypatch):
    png = encode_image("PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    with pytest.raises(InvalidInputImageError):
        normalize_input_image(png)
