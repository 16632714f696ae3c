"""Matplotlib-based preview display for traced frames.

Example:
    >>> from spheretrace.preview.display import show_preview
    >>> framebuffer = trace(camera, scene)
    >>> show_preview(framebuffer, title="Sphere")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from spheretrace.preview.export import compute_rmse

if TYPE_CHECKING:
    from spheretrace.core.framebuffer import Framebuffer


def to_display_image(image: Framebuffer | npt.NDArray[np.generic]) -> npt.NDArray[np.float32]:
    """Convert a framebuffer or image array to float RGB in [0, 1].

    uint8 pixels are scaled by 1/255; float arrays are clamped.

    Raises:
        ValueError: If the image is not of shape (H, W, 3).
    """
    pixels = image if isinstance(image, np.ndarray) else image.to_numpy()
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {pixels.shape}")
    if pixels.dtype == np.uint8:
        return pixels.astype(np.float32) / 255.0
    return np.clip(pixels, 0.0, 1.0).astype(np.float32)


def show_preview(
    framebuffer: Framebuffer | npt.NDArray[np.generic],
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 8),
    block: bool = True,
) -> None:
    """Display a traced frame as a Matplotlib figure.

    Args:
        framebuffer: The Framebuffer (or image array) to display.
        title: Custom title (default shows the resolution).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    display_image = to_display_image(framebuffer)

    fig, ax = plt.subplots(1, 1, figsize=figsize)

    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        rows, cols = display_image.shape[:2]
        title = f"Sphere Trace - {cols}x{rows}"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: Framebuffer | npt.NDArray[np.generic],
    image_b: Framebuffer | npt.NDArray[np.generic],
    *,
    labels: tuple[str, str] = ("A", "B"),
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 6),
    block: bool = True,
) -> float:
    """Display side-by-side comparison of two frames with difference view.

    Args:
        image_a: First frame.
        image_b: Second frame.
        labels: Labels for the two frames.
        diff_scale: Scale factor for difference amplification.
        figsize: Figure size in inches.
        block: Whether to block execution until figure is closed.

    Returns:
        RMSE between the two frames, in [0, 1] display units.
    """
    import matplotlib.pyplot as plt

    display_a = to_display_image(image_a)
    display_b = to_display_image(image_b)

    rmse = compute_rmse(display_a, display_b)

    diff = np.abs(display_a.astype(np.float64) - display_b.astype(np.float64))
    diff_amplified = np.clip(diff * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].imshow(display_a)
    axes[0].set_title(labels[0])
    axes[0].axis("off")

    axes[1].imshow(display_b)
    axes[1].set_title(labels[1])
    axes[1].axis("off")

    axes[2].imshow(diff_amplified)
    axes[2].set_title(f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}")
    axes[2].axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse
