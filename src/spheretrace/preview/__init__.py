"""Preview and export module for traced frames.

Components:
    export: PPM (with metadata footer) and PNG writers, PPM reader, RMSE
    display: Matplotlib preview and side-by-side comparison

Matplotlib is imported lazily by the display functions so headless export
does not need a GUI backend.
"""

from .display import show_comparison, show_preview, to_display_image
from .export import (
    PPMFooter,
    PPMHeader,
    compute_rmse,
    image_to_uint8,
    read_ppm,
    read_ppm_header,
    save_png,
    save_png_from_array,
    save_ppm,
)

__all__ = [
    "PPMFooter",
    "PPMHeader",
    "save_ppm",
    "read_ppm",
    "read_ppm_header",
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
    "show_preview",
    "show_comparison",
    "to_display_image",
]
