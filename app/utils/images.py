import base64
import binascii
import hashlib
import io
import logging
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

JPEG_MEDIA_TYPE = "image/jpeg"
MAX_IMAGE_DIMENSION = 2048  # px, longest side sent to vision providers


class InvalidImageError(ValueError):
    """Image payload is neither raw bytes nor decodable base64."""


def split_data_uri(data: str) -> Tuple[str, str]:
    """Split ``data:<media>;base64,<payload>`` into (media type, payload).

    Plain base64 strings come back with an empty media type.
    """
    data = data.strip()
    if data.startswith("data:") and "," in data:
        header, payload = data.split(",", 1)
        media_type = header[5:].split(";", 1)[0]
        return media_type, payload
    return "", data


def to_jpeg_bytes(image_bytes: bytes) -> bytes:
    """Re-encode an image as JPEG (and shrink very large photos).

    Bytes Pillow cannot read are returned untouched; the provider gets to
    decide what to do with them.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            if img.format == "JPEG" and max(img.size) <= MAX_IMAGE_DIMENSION:
                return image_bytes
            img = img.convert("RGB")
            img.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=90)
            return out.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not decode image for JPEG conversion, sending as-is: {e}")
        return image_bytes


def prepare_image(image: Union[bytes, str]) -> str:
    """Return the image as a raw base64 JPEG payload (no data-URI prefix)."""
    if isinstance(image, (bytes, bytearray)):
        return base64.b64encode(to_jpeg_bytes(bytes(image))).decode("utf-8")

    media_type, payload = split_data_uri(image)
    if not payload:
        raise InvalidImageError("empty image payload")
    if media_type and media_type != JPEG_MEDIA_TYPE:
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidImageError(f"image is not valid base64: {e}")
        return base64.b64encode(to_jpeg_bytes(raw)).decode("utf-8")
    return payload


def to_data_uri(image_b64: str) -> str:
    return f"data:{JPEG_MEDIA_TYPE};base64,{image_b64}"


def get_image_hash(image_b64: str) -> str:
    """Generate hash for image caching"""
    return hashlib.md5(image_b64.encode("utf-8")).hexdigest()
