"""Image export utilities for traced frames.

Supported formats:
    - PPM (binary P6, with an optional fixed-size metadata footer)
    - PNG (8-bit RGB via Pillow)

The PPM header is written as four newline-terminated fields:

    P6\\n<width>\\n<height>\\n<max_val>\\n

followed by width * height * 3 raw bytes in row-major order. Readers accept
any whitespace between fields and '#' comments, as PPM allows.

The footer is appended after the pixel data and is ignored by ordinary PPM
readers. It is a 32 byte record (struct format ``<4sH26s``): the magic b"SPTR",
a little-endian format version and a NUL-padded ASCII tag.

Example:
    >>> from spheretrace.preview.export import save_ppm, read_ppm, PPMFooter
    >>> save_ppm(framebuffer, "sphere.ppm", footer=PPMFooter(tag="sphere"))
    >>> header, pixels, footer = read_ppm("sphere.ppm")
    >>> header.width, header.height, footer.tag
    (256, 256, 'sphere')
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, Union

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from spheretrace.core.framebuffer import Framebuffer

PathLike = Union[str, "os.PathLike[str]"]

PPM_MAGIC = b"P6"

# Footer record layout: magic, version, tag
FOOTER_FORMAT = "<4sH26s"
FOOTER_MAGIC = b"SPTR"
FOOTER_SIZE = struct.calcsize(FOOTER_FORMAT)
FOOTER_TAG_SIZE = 26


# =============================================================================
# PPM
# =============================================================================


class PPMHeader(NamedTuple):
    """Parsed PPM header.

    Attributes:
        magic: The format magic, b"P6".
        width: Image width in pixels.
        height: Image height in pixels.
        max_val: Maximum sample value.
        offset: Byte offset of the first pixel.
    """

    magic: bytes
    width: int
    height: int
    max_val: int
    offset: int


@dataclass(frozen=True)
class PPMFooter:
    """Metadata record appended after the PPM pixel data.

    Attributes:
        tag: ASCII label, at most 26 bytes.
        version: Footer format version.
    """

    tag: str
    version: int = 1

    def __post_init__(self) -> None:
        encoded = self.tag.encode("ascii")
        if len(encoded) > FOOTER_TAG_SIZE:
            raise ValueError(f"Footer tag is limited to {FOOTER_TAG_SIZE} bytes, got {len(encoded)}")
        if not 0 <= self.version <= 0xFFFF:
            raise ValueError(f"Footer version out of range: {self.version}")

    def pack(self) -> bytes:
        """Serialize the footer to its 32 byte record."""
        return struct.pack(FOOTER_FORMAT, FOOTER_MAGIC, self.version, self.tag.encode("ascii"))

    @classmethod
    def unpack(cls, data: bytes) -> PPMFooter:
        """Parse a footer record.

        Raises:
            ValueError: If data is not a footer record.
        """
        if len(data) != FOOTER_SIZE:
            raise ValueError(f"Footer must be {FOOTER_SIZE} bytes, got {len(data)}")
        magic, version, tag = struct.unpack(FOOTER_FORMAT, data)
        if magic != FOOTER_MAGIC:
            raise ValueError(f"Bad footer magic: {magic!r}")
        return cls(tag=tag.rstrip(b"\0").decode("ascii"), version=version)


def _as_pixels(image: Framebuffer | npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    pixels = image if isinstance(image, np.ndarray) else image.to_numpy()
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")
    return pixels


def save_ppm(
    image: Framebuffer | npt.NDArray[np.uint8],
    filepath: PathLike,
    *,
    max_val: int = 255,
    footer: PPMFooter | None = None,
) -> None:
    """Save an 8-bit RGB image as a binary PPM file.

    Args:
        image: A Framebuffer or a uint8 array of shape (H, W, 3).
        filepath: Output file path.
        max_val: Maximum sample value written to the header, 1 to 255.
        footer: Optional metadata record appended after the pixels.

    Raises:
        ValueError: If the image is not 8-bit RGB or max_val is out of range.
    """
    if not 0 < max_val < 256:
        raise ValueError(f"max_val must be in [1, 255] for 8-bit pixels, got {max_val}")
    pixels = _as_pixels(image)
    height, width = pixels.shape[:2]

    with open(filepath, "wb") as f:
        f.write(PPM_MAGIC + b"\n")
        f.write(f"{width}\n{height}\n{max_val}\n".encode("ascii"))
        f.write(np.ascontiguousarray(pixels).tobytes())
        if footer is not None:
            f.write(footer.pack())


def _parse_header(data: bytes) -> PPMHeader:
    tokens: list[bytes] = []
    pos = 0
    size = len(data)

    while len(tokens) < 4:
        if pos >= size:
            raise ValueError("Truncated PPM header")
        ch = data[pos : pos + 1]
        if ch.isspace():
            pos += 1
        elif ch == b"#":
            end = data.find(b"\n", pos)
            if end == -1:
                raise ValueError("Truncated PPM header")
            pos = end + 1
        else:
            start = pos
            while pos < size and not data[pos : pos + 1].isspace() and data[pos : pos + 1] != b"#":
                pos += 1
            tokens.append(data[start:pos])

    # Exactly one whitespace byte separates max_val from the pixels
    if pos >= size or not data[pos : pos + 1].isspace():
        raise ValueError("PPM header must end with a whitespace byte")

    magic = tokens[0]
    if magic != PPM_MAGIC:
        raise ValueError(f"Not a binary PPM file (magic {magic!r})")
    try:
        width, height, max_val = (int(t) for t in tokens[1:])
    except ValueError as e:
        raise ValueError(f"Malformed PPM header fields: {tokens[1:]}") from e
    if width <= 0 or height <= 0:
        raise ValueError(f"PPM dimensions must be positive, got {width}x{height}")
    if not 0 < max_val < 65536:
        raise ValueError(f"PPM max_val out of range: {max_val}")

    return PPMHeader(magic=magic, width=width, height=height, max_val=max_val, offset=pos + 1)


def read_ppm_header(filepath: PathLike) -> PPMHeader:
    """Read and parse the header of a binary PPM file.

    Raises:
        ValueError: If the header is malformed.
    """
    with open(filepath, "rb") as f:
        return _parse_header(f.read())


def read_ppm(filepath: PathLike) -> tuple[PPMHeader, npt.NDArray[np.uint8], PPMFooter | None]:
    """Read an 8-bit binary PPM file.

    Returns:
        Tuple of (header, pixels of shape (height, width, 3), footer). The
        footer is None when the file carries none.

    Raises:
        ValueError: If the file is malformed, truncated or uses 16-bit samples.
    """
    with open(filepath, "rb") as f:
        data = f.read()

    header = _parse_header(data)
    if header.max_val > 255:
        raise ValueError(f"Only 8-bit PPM files are supported, max_val is {header.max_val}")

    count = header.width * header.height * 3
    end = header.offset + count
    if len(data) < end:
        raise ValueError(f"Truncated PPM pixel data: expected {count} bytes, got {len(data) - header.offset}")
    pixels = np.frombuffer(data, dtype=np.uint8, count=count, offset=header.offset)
    pixels = pixels.reshape(header.height, header.width, 3).copy()

    footer = None
    trailer = data[end:]
    if len(trailer) == FOOTER_SIZE and trailer.startswith(FOOTER_MAGIC):
        footer = PPMFooter.unpack(trailer)

    return header, pixels, footer


# =============================================================================
# PNG
# =============================================================================


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a float image in [0, 1] to uint8, clamping out-of-range values."""
    return (np.clip(image, 0.0, 1.0) * 255.0).astype(np.uint8)


def save_png(image: Framebuffer | npt.NDArray[np.uint8], filepath: PathLike) -> None:
    """Save an 8-bit RGB image as a PNG file.

    Args:
        image: A Framebuffer or a uint8 array of shape (H, W, 3).
        filepath: Output file path (should end in .png).
    """
    pil_image = PILImage.fromarray(_as_pixels(image))
    pil_image.save(filepath)


def save_png_from_array(image: npt.NDArray[np.generic], filepath: PathLike) -> None:
    """Save a NumPy array as a PNG file.

    Float arrays are taken as linear colors in [0, 1]; uint8 arrays are
    written as they are.

    Args:
        image: Image array of shape (H, W, 3).
        filepath: Output file path (should end in .png).
    """
    if np.issubdtype(image.dtype, np.floating):
        image = image_to_uint8(image)
    save_png(image, filepath)


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
