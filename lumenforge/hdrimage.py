"""
High dynamic range raster buffer and image codecs.

HdrImage stores linear RGB radiance as a float numpy array of shape
(height, width, 3); row 0 is the top of the image. Images are read and
written in the Portable Float Map format, and LDR formats are decoded
through Pillow.
"""

from __future__ import annotations
import io
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ConfigurationError, ResourceError
from .vec3 import Color

LDR_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.tif', '.tiff', '.bmp')


class HdrImage:
    """A width x height grid of linear RGB colours."""

    def __init__(self, width: int, height: int, pixels: np.ndarray = None):
        """Create a black image, or wrap an existing (height, width, 3) array."""
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"image dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        if pixels is None:
            self.pixels = np.zeros((height, width, 3), dtype=np.float64)
        else:
            if pixels.shape != (height, width, 3):
                raise ValueError(f"expected pixels of shape {(height, width, 3)}, got {pixels.shape}")
            self.pixels = np.asarray(pixels, dtype=np.float64)

    def valid_coordinates(self, col: int, row: int) -> bool:
        return 0 <= col < self.width and 0 <= row < self.height

    def _check(self, col: int, row: int) -> None:
        if not self.valid_coordinates(col, row):
            raise IndexError(f"pixel ({col}, {row}) outside a {self.width}x{self.height} image")

    def get_pixel(self, col: int, row: int) -> Color:
        self._check(col, row)
        return Color.from_array(self.pixels[row, col].copy())

    def set_pixel(self, col: int, row: int, color: Color) -> None:
        self._check(col, row)
        self.pixels[row, col] = color.to_array()

    def copy(self) -> HdrImage:
        return HdrImage(self.width, self.height, self.pixels.copy())

    def __repr__(self) -> str:
        return f"HdrImage({self.width}x{self.height})"


# ---------------------------------------------------------------------------
# PFM
# ---------------------------------------------------------------------------

def _read_line(stream: BinaryIO) -> str:
    line = b""
    while True:
        byte = stream.read(1)
        if byte in (b"", b"\n"):
            return line.decode("ascii", errors="replace")
        line += byte


def read_pfm(stream: BinaryIO) -> HdrImage:
    """Read a colour PFM image from a binary stream.

    Raises:
        ResourceError: if the data is not a well-formed colour PFM
    """
    magic = _read_line(stream)
    if magic != "PF":
        raise ResourceError(f"invalid PFM header {magic!r}, expected 'PF'")

    size = _read_line(stream).split()
    try:
        width, height = (int(value) for value in size)
    except ValueError:
        raise ResourceError(f"invalid PFM image size {' '.join(size)!r}") from None
    if width <= 0 or height <= 0:
        raise ResourceError(f"invalid PFM image size {width}x{height}")

    try:
        endianness = float(_read_line(stream))
    except ValueError:
        raise ResourceError("invalid PFM endianness specification") from None
    if endianness == 0:
        raise ResourceError("PFM endianness must be non-zero")
    dtype = np.dtype('<f4') if endianness < 0 else np.dtype('>f4')

    expected = width * height * 3 * 4
    data = stream.read(expected)
    if len(data) != expected:
        raise ResourceError(f"truncated PFM data: expected {expected} bytes, got {len(data)}")

    # Scanlines are stored bottom to top
    pixels = np.frombuffer(data, dtype=dtype).reshape((height, width, 3))[::-1]
    return HdrImage(width, height, pixels.astype(np.float64))


def write_pfm(image: HdrImage, output: Union[str, Path, BinaryIO], little_endian: bool = True) -> None:
    """Write an image as PFM to a path or binary stream."""
    if isinstance(output, (str, Path)):
        with open(output, "wb") as f:
            write_pfm(image, f, little_endian)
        return

    endianness = -1.0 if little_endian else 1.0
    output.write(f"PF\n{image.width} {image.height}\n{endianness}\n".encode("ascii"))
    dtype = np.dtype('<f4') if little_endian else np.dtype('>f4')
    output.write(image.pixels[::-1].astype(dtype).tobytes())


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_image(path: Union[str, Path], gamma: float = 2.2) -> HdrImage:
    """Load an image file as linear radiance.

    PFM files are read as they are; LDR formats are decoded with Pillow and
    linearised with `gamma`.

    Raises:
        ConfigurationError: for an unsupported file extension
        ResourceError: if the file is missing or cannot be decoded
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix != '.pfm' and suffix not in LDR_EXTENSIONS:
        raise ConfigurationError(f"unsupported image format '{suffix}' for {path}")
    if not path.is_file():
        raise ResourceError(f"image file not found: {path}")

    if suffix == '.pfm':
        with open(path, "rb") as f:
            return read_pfm(f)

    try:
        with Image.open(path) as img:
            data = np.array(img.convert('RGB'), dtype=np.float64) / 255.0
    except (UnidentifiedImageError, OSError) as exc:
        raise ResourceError(f"cannot decode image {path}: {exc}") from exc

    if gamma != 1.0:
        data = np.power(data, gamma)
    height, width = data.shape[:2]
    return HdrImage(width, height, data)


def pfm_bytes(image: HdrImage) -> bytes:
    """Serialise an image to PFM in memory."""
    buffer = io.BytesIO()
    write_pfm(image, buffer)
    return buffer.getvalue()
