import io

import pytest

from jpegmetrics.util import (
    DecodedImage,
    FileType,
    ImageFormatError,
    PixelFormat,
    Subsampling,
    check_jpeg_magic,
    check_ppm_magic,
    decode_file,
    decode_file_from_buffer,
    decode_jpeg,
    decode_ppm,
    detect_filetype,
    detect_filetype_from_buffer,
    encode_jpeg,
    get_metadata,
    read_file,
)

PPM_2X2 = b"P6\n2 2\n255\n\x01\x02\x03\x04\x05\x06\x07\x08\x09\x0a\x0b\x0c"


def _segment(marker: int, payload: bytes) -> bytes:
    length = len(payload) + 2
    return bytes([0xFF, marker, length >> 8, length & 0xFF]) + payload


def test_decode_ppm_from_source_case():
    image = decode_ppm(PPM_2X2)
    assert len(PPM_2X2) == 23
    assert image.width == 2
    assert image.height == 2
    assert image.pixels[0] == 0x01
    assert image.pixels[11] == 0x0C
    assert image.components == 3


def test_decode_ppm_skips_comments_and_blank_lines():
    data = b"P6\n# a comment\n\n3 1\n255\n" + bytes(range(9))
    image = decode_ppm(data)
    assert (image.width, image.height) == (3, 1)
    assert image.pixels == bytes(range(9))


def test_decode_ppm_rejects_bad_magic():
    with pytest.raises(ImageFormatError):
        decode_ppm(b"P5\n2 2\n255\n" + bytes(4))


def test_decode_ppm_rejects_unsupported_depth():
    with pytest.raises(ImageFormatError, match="bit depth: 65535"):
        decode_ppm(b"P6\n1 1\n65535\n" + bytes(6))


def test_decode_ppm_rejects_wrong_size():
    with pytest.raises(ImageFormatError, match="incorrect image size"):
        decode_ppm(PPM_2X2[:-1])


def test_decode_ppm_rejects_missing_header():
    with pytest.raises(ImageFormatError):
        decode_ppm(b"P6\n")


def test_magic_checks():
    assert check_jpeg_magic(b"\xff\xd8\xff") is True
    assert check_jpeg_magic(b"\xff") is False
    assert check_ppm_magic(b"P6\n") is True
    assert check_ppm_magic(b"P3\n") is False


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"\xff\xd8rest", FileType.JPEG),
        (b"P6\n1 1\n", FileType.PPM),
        (b"GIF89a", FileType.UNKNOWN),
        (b"", FileType.UNKNOWN),
    ],
)
def test_detect_filetype_from_buffer(data, expected):
    assert detect_filetype_from_buffer(data) is expected


def test_detect_filetype_and_decode_file(tmp_path):
    path = tmp_path / "image.ppm"
    path.write_bytes(PPM_2X2)
    assert detect_filetype(str(path)) is FileType.PPM
    image = decode_file(str(path), FileType.PPM)
    assert image.pixels == PPM_2X2[11:]


def test_read_file_round_trip(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"\x00\x01payload")
    assert read_file(str(path)) == b"\x00\x01payload"


def test_read_file_from_stdin(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b"from stdin")))
    assert read_file("-") == b"from stdin"


def test_read_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_file(str(tmp_path / "missing.jpg"))


def test_jpeg_grayscale_round_trip():
    encoded = encode_jpeg(bytes([128]) * 64, 8, 8, PixelFormat.GRAYSCALE, 90)
    assert check_jpeg_magic(encoded)
    decoded = decode_jpeg(encoded, PixelFormat.GRAYSCALE)
    assert (decoded.width, decoded.height, decoded.components) == (8, 8, 1)
    assert all(abs(value - 128) <= 2 for value in decoded.pixels)


def test_jpeg_rgb_round_trip_with_444():
    pixels = bytes([200, 30, 60]) * (16 * 8)
    encoded = encode_jpeg(
        pixels, 16, 8, PixelFormat.RGB, 95, False, True, Subsampling.S444
    )
    decoded = decode_file_from_buffer(encoded, FileType.JPEG, PixelFormat.RGB)
    assert isinstance(decoded, DecodedImage)
    assert (decoded.width, decoded.height) == (16, 8)
    assert decoded.size == 16 * 8 * 3
    assert abs(decoded.pixels[0] - 200) <= 4


def test_progressive_jpeg_uses_progressive_frame():
    pixels = bytes(range(64))
    progressive = encode_jpeg(pixels, 8, 8, PixelFormat.GRAYSCALE, 80, True)
    baseline = encode_jpeg(pixels, 8, 8, PixelFormat.GRAYSCALE, 80, False)
    assert b"\xff\xc2" in progressive
    assert b"\xff\xc0" in baseline
    assert b"\xff\xc2" not in baseline


def test_encode_jpeg_rejects_wrong_pixel_count():
    with pytest.raises(ValueError):
        encode_jpeg(bytes(10), 4, 4, PixelFormat.GRAYSCALE, 80)


def test_decode_jpeg_rejects_garbage():
    with pytest.raises(ImageFormatError):
        decode_jpeg(b"\xff\xd8not really a jpeg")


def test_decode_unknown_filetype_raises():
    with pytest.raises(ImageFormatError):
        decode_file_from_buffer(PPM_2X2, FileType.UNKNOWN)


def _sample_jpeg_header() -> tuple[bytes, bytes, bytes]:
    app0 = _segment(0xE0, b"JFIF\x00" + bytes(9))
    app1 = _segment(0xE1, b"Exif\x00\x00")
    com = _segment(0xFE, b"hello")
    dqt = _segment(0xDB, b"\x00\x01")
    data = b"\xff\xd8" + app0 + app1 + com + dqt + b"\xff\xda\x00\x08rest"
    return data, app1, com


def test_get_metadata_collects_app_and_comment_segments():
    data, app1, com = _sample_jpeg_header()
    assert get_metadata(data) == app1 + com


def test_get_metadata_detects_comment():
    data, _, _ = _sample_jpeg_header()
    assert get_metadata(data, "hell") is None
    data_meta = get_metadata(data, "other")
    assert data_meta is not None and data_meta.endswith(b"hello")


def test_get_metadata_limits_marker_count():
    app1 = _segment(0xE1, b"abc")
    data = b"\xff\xd8" + app1 * 25 + b"\xff\xda\x00\x08"
    assert get_metadata(data) == app1 * 20


def test_get_metadata_of_plain_encoded_jpeg_is_empty():
    encoded = encode_jpeg(bytes(64), 8, 8, PixelFormat.GRAYSCALE, 80)
    assert get_metadata(encoded) == b""


def test_get_metadata_truncated():
    with pytest.raises(ImageFormatError):
        get_metadata(b"\xff\xd8\xff\xe1\x00")