"""Media transcoding tests."""

import base64
import io

import pytest
from PIL import Image

from comfy_bridge.schemas.history import FileCategory
from comfy_bridge.services.media import encode_video, format_file_size, transcode_image


@pytest.mark.parametrize(
    "num_bytes, expected",
    [
        (0, "0 kB"),
        (1024, "1 kB"),
        (1536, "1.5 kB"),
        (1075, "1 kB"),
        (1100, "1.1 kB"),
        (10 * 1024 * 1024, "10240 kB"),
    ],
)
def test_format_file_size(num_bytes, expected):
    assert format_file_size(num_bytes) == expected


def test_video_is_passed_through():
    media = encode_video("out.webm", b"raw")
    assert media.data == b"raw"
    assert media.category is FileCategory.VIDEO
    assert media.mime_type == "video/webm"
    assert base64.b64decode(media.base64) == b"raw"


def test_rgba_png_to_jpeg_drops_alpha(make_image):
    media = transcode_image("frame.jpeg", make_image("PNG", mode="RGBA"))
    img = Image.open(io.BytesIO(media.data))
    assert img.format == "JPEG"
    assert img.mode == "RGB"
    assert media.extension == "jpeg"


def test_webp_is_reencoded_as_png(make_image):
    media = transcode_image("frame.webp", make_image("WEBP"))
    assert Image.open(io.BytesIO(media.data)).format == "PNG"
    assert media.mime_type == "image/png"
    assert media.file_size == format_file_size(len(media.data))


def test_undecodable_bytes_raise_oserror():
    with pytest.raises(OSError):
        transcode_image("x.png", b"garbage")
