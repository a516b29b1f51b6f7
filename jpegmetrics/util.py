"""Reading, detecting, decoding and encoding of JPEG and PPM images.

Also extracts the metadata segments (EXIF, XMP, comments and the like) of a
JPEG file, so they can be copied into a new file.
"""

from __future__ import annotations

import enum
import io
import re
import sys
from dataclasses import dataclass
from typing import Optional, Union

from PIL import Image

_MAX_METADATA_MARKERS = 20

_MARKER_SOS = 0xFFDA
_MARKER_DRI = 0xFFDD
_MARKER_RST0 = 0xFFD0
_MARKER_EOI = 0xFFD9
_MARKER_APP1 = 0xFFE1
_MARKER_APP15 = 0xFFEF
_MARKER_COM = 0xFFFE

_DIMENSIONS = re.compile(rb"\s*([+-]?\d+)(?!\d)\s*([+-]?\d+)")
_INTEGER = re.compile(rb"\s*([+-]?\d+)")


class ImageFormatError(ValueError):
    """The data is not a valid or supported image."""


class FileType(enum.Enum):
    """Kinds of image file the tools understand."""

    UNKNOWN = 0
    AUTO = 1
    JPEG = 2
    PPM = 3


class PixelFormat(enum.IntEnum):
    """Pixel layouts for decoded image data."""

    GRAYSCALE = 1
    RGB = 2

    @property
    def components(self) -> int:
        """Number of bytes per pixel."""
        return 3 if self is PixelFormat.RGB else 1

    @property
    def mode(self) -> str:
        return "RGB" if self is PixelFormat.RGB else "L"


class Subsampling(enum.Enum):
    """Chroma subsampling used when encoding.

    ``DEFAULT`` is 4:2:0, which suits photos; ``S444`` keeps every chroma
    sample and stops fine coloured detail such as text from blurring.
    """

    DEFAULT = 0
    S444 = 1


@dataclass(frozen=True)
class DecodedImage:
    """Raw pixel data in row-major order, ``components`` bytes per pixel."""

    pixels: bytes
    width: int
    height: int
    components: int

    @property
    def size(self) -> int:
        """Length of the pixel data in bytes."""
        return len(self.pixels)


def read_file(name: str) -> bytes:
    """Return the whole content of file ``name``; ``"-"`` reads standard input."""
    if name == "-":
        return sys.stdin.buffer.read()
    with open(name, "rb") as handle:
        return handle.read()


def check_jpeg_magic(buf: bytes) -> bool:
    """True if ``buf`` starts with the JPEG start-of-image marker."""
    return len(buf) >= 2 and buf[0] == 0xFF and buf[1] == 0xD8


def check_ppm_magic(buf: bytes) -> bool:
    """True if ``buf`` starts with the binary PPM signature ``P6``."""
    return len(buf) >= 2 and buf[0] == ord("P") and buf[1] == ord("6")


def decode_jpeg(buf: bytes, pixel_format: PixelFormat = PixelFormat.RGB) -> DecodedImage:
    """Decode JPEG data into raw pixels of the given format."""
    pixel_format = PixelFormat(pixel_format)
    try:
        with Image.open(io.BytesIO(bytes(buf))) as image:
            if image.format != "JPEG":
                raise ImageFormatError("not a valid JPEG image")
            converted = image.convert(pixel_format.mode)
    except (OSError, SyntaxError) as exc:
        raise ImageFormatError(f"unable to decode JPEG: {exc}") from exc
    width, height = converted.size
    return DecodedImage(converted.tobytes(), width, height, pixel_format.components)


def encode_jpeg(
    pixels: bytes,
    width: int,
    height: int,
    pixel_format: PixelFormat = PixelFormat.RGB,
    quality: int = 75,
    progressive: bool = False,
    optimize: bool = False,
    subsample: Subsampling = Subsampling.DEFAULT,
) -> bytes:
    """Encode raw pixels as a JPEG and return the encoded bytes."""
    pixel_format = PixelFormat(pixel_format)
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid image size {width}x{height}")
    expected = width * height * pixel_format.components
    data = bytes(pixels)
    if len(data) != expected:
        raise ValueError(f"pixel data holds {len(data)} bytes, expected {expected}")

    quality = min(max(int(quality), 1), 100)
    image = Image.frombytes(pixel_format.mode, (width, height), data)
    options = {
        "quality": quality,
        "progressive": bool(progressive),
        "optimize": bool(optimize),
    }
    if subsample is Subsampling.S444 and pixel_format is PixelFormat.RGB:
        options["subsampling"] = 0

    out = io.BytesIO()
    image.save(out, format="JPEG", **options)
    return out.getvalue()


def _next_line(data: bytes, pos: int) -> int:
    end = data.find(b"\n", pos)
    return len(data) if end < 0 else end + 1


def decode_ppm(buf: bytes) -> DecodedImage:
    """Decode a binary (P6) PPM image with a maximum value of 255."""
    data = bytes(buf)
    size = len(data)
    if not check_ppm_magic(data):
        raise ImageFormatError("not a valid PPM format image")

    pos = _next_line(data, 0)
    while pos < size and data[pos] in (ord("#"), ord("\n")):
        pos = _next_line(data, pos)
    if pos >= size:
        raise ImageFormatError("not a valid PPM format image")

    dims = _DIMENSIONS.match(data, pos)
    if dims is None:
        raise ImageFormatError("not a valid PPM format image")
    width, height = int(dims.group(1)), int(dims.group(2))
    if width < 0 or height < 0:
        raise ImageFormatError(f"invalid PPM image size {width}x{height}")

    pos = _next_line(data, pos)
    if pos >= size:
        raise ImageFormatError("not a valid PPM format image")

    depth_match = _INTEGER.match(data, pos)
    if depth_match is None:
        raise ImageFormatError("not a valid PPM format image")
    depth = int(depth_match.group(1))
    if depth != 255:
        raise ImageFormatError(f"unsupported bit depth: {depth}")

    pos = _next_line(data, pos)
    image_size = width * height * 3
    if pos + image_size != size:
        raise ImageFormatError(f"incorrect image size: {size} vs. {pos + image_size}")
    return DecodedImage(data[pos:], width, height, 3)


def detect_filetype_from_buffer(buf: bytes) -> FileType:
    """Identify image data as JPEG or PPM from its first bytes."""
    if check_jpeg_magic(buf):
        return FileType.JPEG
    if check_ppm_magic(buf):
        return FileType.PPM
    return FileType.UNKNOWN


def detect_filetype(filename: str) -> FileType:
    """Identify the image type of a file from its first bytes."""
    return detect_filetype_from_buffer(read_file(filename))


def decode_file_from_buffer(
    buf: bytes, filetype: FileType, pixel_format: PixelFormat = PixelFormat.RGB
) -> DecodedImage:
    """Decode image data of a known type; PPM data is always RGB."""
    if filetype is FileType.PPM:
        return decode_ppm(buf)
    if filetype is FileType.JPEG:
        return decode_jpeg(buf, pixel_format)
    raise ImageFormatError(f"cannot decode file type {filetype.name}")


def decode_file(
    filename: str, filetype: FileType, pixel_format: PixelFormat = PixelFormat.RGB
) -> DecodedImage:
    """Read and decode an image file of a known type."""
    return decode_file_from_buffer(read_file(filename), filetype, pixel_format)


def get_metadata(buf: bytes, comment: Optional[Union[str, bytes]] = None) -> Optional[bytes]:
    """Collect the APP1-APP15 and COM segments that precede the image data.

    At most 20 segments are collected; they are returned concatenated, ready
    to be written into a new file. If ``comment`` is given and a COM segment
    starts with it, None is returned, so callers can tell the file was
    already processed.
    """
    data = bytes(buf)
    size = len(data)
    needle = comment.encode("utf-8") if isinstance(comment, str) else comment

    segments: list[bytes] = []
    pos = 0
    while pos < size and len(segments) < _MAX_METADATA_MARKERS:
        if pos + 2 > size:
            raise ImageFormatError(f"truncated JPEG marker at offset {pos}")
        marker = (data[pos] << 8) | data[pos + 1]

        if marker == _MARKER_SOS:
            break
        if marker == _MARKER_DRI:
            pos += 6
        elif _MARKER_RST0 <= marker <= _MARKER_EOI:
            pos += 2
        else:
            if pos + 4 > size:
                raise ImageFormatError(f"truncated JPEG segment at offset {pos}")
            length = (data[pos + 2] << 8) | data[pos + 3]
            if _MARKER_APP1 <= marker <= _MARKER_APP15 or marker == _MARKER_COM:
                if (
                    marker == _MARKER_COM
                    and needle is not None
                    and data[pos + 4 : pos + 4 + len(needle)] == needle
                ):
                    return None
                segments.append(data[pos : pos + 2 + length])
            pos += 2 + length

    return b"".join(segments)