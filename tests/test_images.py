"""
Tests for image payload preparation
"""
import base64
import io

import pytest
from PIL import Image

from app.utils.images import (
    MAX_IMAGE_DIMENSION,
    InvalidImageError,
    get_image_hash,
    prepare_image,
    split_data_uri,
    to_data_uri,
    to_jpeg_bytes,
)


def make_image(fmt="PNG", size=(32, 32)):
    out = io.BytesIO()
    Image.new("RGB", size, color=(40, 160, 60)).save(out, format=fmt)
    return out.getvalue()


def decode(b64):
    return Image.open(io.BytesIO(base64.b64decode(b64)))


class TestDataUri:
    def test_split(self):
        assert split_data_uri("data:image/png;base64,QUJD") == ("image/png", "QUJD")

    def test_plain_base64(self):
        assert split_data_uri("  QUJD ") == ("", "QUJD")

    def test_round_trip_prefix(self):
        assert to_data_uri("QUJD") == "data:image/jpeg;base64,QUJD"


class TestPrepareImage:
    def test_png_data_uri_becomes_jpeg(self):
        png = base64.b64encode(make_image("PNG")).decode()
        prepared = prepare_image("data:image/png;base64," + png)
        assert decode(prepared).format == "JPEG"

    def test_raw_bytes_become_jpeg(self):
        assert decode(prepare_image(make_image("PNG"))).format == "JPEG"

    def test_jpeg_payload_untouched(self):
        payload = base64.b64encode(make_image("JPEG")).decode()
        assert prepare_image("data:image/jpeg;base64," + payload) == payload
        assert prepare_image(payload) == payload

    def test_large_photo_shrunk(self):
        big = make_image("PNG", size=(MAX_IMAGE_DIMENSION + 500, 100))
        with Image.open(io.BytesIO(to_jpeg_bytes(big))) as img:
            assert max(img.size) == MAX_IMAGE_DIMENSION

    def test_undecodable_bytes_passed_through(self):
        assert to_jpeg_bytes(b"not an image") == b"not an image"

    @pytest.mark.parametrize("image", ["", "   ", "data:image/jpeg;base64,"])
    def test_empty_rejected(self, image):
        with pytest.raises(InvalidImageError):
            prepare_image(image)

    def test_bad_base64_rejected(self):
        with pytest.raises(InvalidImageError):
            prepare_image("data:image/png;base64,@@not-base64@@")


def test_image_hash_is_stable_md5():
    assert get_image_hash("QUJD") == get_image_hash("QUJD")
    assert len(get_image_hash("QUJD")) == 32
    assert get_image_hash("QUJD") != get_image_hash("QUJE")
