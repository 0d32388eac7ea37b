import base64
import binascii
import logging
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

from backend.errors import InvalidInputImageError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ['jpeg', 'png']


def _strip_data_url(value: str) -> str:
    """Drop a 'data:image/...;base64,' prefix if the browser sent one."""
    if value.startswith("data:"):
        _, _, value = value.partition(",")
    return value.strip()


def _convert_to_png(img: Image.Image) -> bytes:
    """Convert an image to PNG bytes, flattening transparency onto white."""
    if img.mode in ('RGBA', 'LA'):
        background = Image.new('RGB', img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        img = background
    output = BytesIO()
    img.save(output, format='PNG')
    return output.getvalue()


def normalize_input_image(value: Optional[str]) -> Optional[str]:
    """Verify an uploaded image and return the bare base64 payload.

    JPEG and PNG are passed through untouched, WebP is converted to PNG.

    Args:
        value (str, optional): Data URL or base64 encoded image

    Returns:
        Optional[str]: Base64 image data, or None when no image was supplied

    Raises:
        InvalidInputImageError: If the data is not a decodable JPEG, PNG or WebP image
    """
    if not value:
        return None

    payload = _strip_data_url(value)
    if not payload:
        return None

    try:
        image_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputImageError(f"Input image is not valid base64: {str(e)}")

    try:
        with Image.open(BytesIO(image_bytes)) as img:
            actual_type = (img.format or '').lower()
            logger.info(f"Detected input image type: {actual_type} ({img.size[0]}x{img.size[1]})")

            if actual_type == 'webp':
                logger.info("Converting WebP input image to PNG format")
                return base64.b64encode(_convert_to_png(img)).decode('utf8')
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidInputImageError(f"Could not determine image format: {str(e)}")

    if actual_type not in SUPPORTED_FORMATS:
        raise InvalidInputImageError(
            f"Invalid image format. Expected JPEG, PNG, or WebP, but got: {actual_type}"
        )

    return payload
