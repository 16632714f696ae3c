"""Row-major RGB framebuffer written by a trace pass.

Pixels are 8-bit RGB triples stored contiguously row after row, so the buffer
can be handed to a Taichi kernel as an ndarray and written to disk without
reshaping. Row 0 is the top of the image.

Example:
    >>> fb = Framebuffer(rows=2, cols=3)
    >>> fb[1][2] = (255, 0, 0)
    >>> fb.save_as_ppm("red_corner.ppm")
"""

import numpy as np
import numpy.typing as npt

from spheretrace.preview.export import PathLike, PPMFooter, save_png, save_ppm


class Framebuffer:
    """An (rows, cols, 3) uint8 image.

    Attributes:
        buffer: The backing array. Kernels write to it directly.
    """

    def __init__(self, rows: int, cols: int) -> None:
        if rows <= 0 or cols <= 0:
            raise ValueError(f"Framebuffer size must be positive, got {rows}x{cols}")
        self.buffer = np.zeros((rows, cols, 3), dtype=np.uint8)

    @property
    def rows(self) -> int:
        return self.buffer.shape[0]

    @property
    def cols(self) -> int:
        return self.buffer.shape[1]

    @property
    def shape(self) -> tuple[int, int, int]:
        return self.buffer.shape

    def __getitem__(self, row: int) -> npt.NDArray[np.uint8]:
        """View of one row; ``fb[r][c]`` is the pixel at row r, column c."""
        return self.buffer[row]

    def __len__(self) -> int:
        return self.rows

    def to_numpy(self) -> npt.NDArray[np.uint8]:
        """Copy of the pixels as an (rows, cols, 3) array."""
        return self.buffer.copy()

    def save_as_ppm(self, filepath: PathLike, max_val: int = 255, footer: PPMFooter | None = None) -> None:
        """Write the pixels as a binary PPM file."""
        save_ppm(self.buffer, filepath, max_val=max_val, footer=footer)

    def save_png(self, filepath: PathLike) -> None:
        """Write the pixels as a PNG file."""
        save_png(self.buffer, filepath)
