#!/usr/bin/env python3
"""Render the sphere-over-ground demo scene.

This script traces the demo sphere scene with the sphere-marching integrator
and writes the frame as a PPM (with a metadata footer) or a PNG, depending on
the output file extension.

Usage:
    python -m examples.render_sphere [options]

Options:
    --rows ROWS          Sensor rows (default: 256)
    --cols COLS          Sensor columns (default: 256)
    --max-steps STEPS    Marching steps per pixel (default: 256)
    --output OUTPUT      Output file path, .ppm or .png (default: sphere.ppm)
    --tag TAG            Tag stored in the PPM footer (default: sphere)
    --arch {cpu,gpu}     Taichi backend (default: cpu)
    --preview            Show the frame in a Matplotlib window
    --quiet              Suppress progress output

Example:
    python -m examples.render_sphere --rows 128 --cols 128 --output sphere.png
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the sphere-over-ground demo scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--rows",
        type=int,
        default=256,
        help="Sensor rows (default: 256)",
    )
    parser.add_argument(
        "--cols",
        type=int,
        default=256,
        help="Sensor columns (default: 256)",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=256,
        help="Marching steps per pixel (default: 256)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="sphere.ppm",
        help="Output file path, .ppm or .png (default: sphere.ppm)",
    )
    parser.add_argument(
        "--tag",
        type=str,
        default="sphere",
        help="Tag stored in the PPM footer (default: sphere)",
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Show the frame in a Matplotlib window",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_sphere(
    rows: int = 256,
    cols: int = 256,
    max_steps: int = 256,
    output_path: str = "sphere.ppm",
    tag: str = "sphere",
    preview: bool = False,
    quiet: bool = False,
) -> Path:
    """Trace the sphere demo scene and save it to a file.

    Args:
        rows: Sensor rows.
        cols: Sensor columns.
        max_steps: Marching steps per pixel.
        output_path: Output file path (.ppm or .png).
        tag: Tag stored in the PPM footer.
        preview: If True, show the frame after saving.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from spheretrace.core.integrator import TracerConfig, trace
    from spheretrace.preview.export import PPMFooter
    from spheretrace.scene.demo import SphereSceneParams, create_sphere_scene

    if not quiet:
        print(f"Creating sphere scene ({cols}x{rows})...")

    scene, camera = create_sphere_scene(SphereSceneParams(rows=rows, cols=cols))
    config = TracerConfig(max_steps=max_steps)

    if not quiet:
        print(f"Tracing with up to {max_steps} steps per pixel...")

    start_time = time.time()
    framebuffer = trace(camera, scene, config)
    total_time = time.time() - start_time

    output_file = Path(output_path)
    if output_file.suffix.lower() == ".png":
        framebuffer.save_png(output_file)
    else:
        framebuffer.save_as_ppm(output_file, footer=PPMFooter(tag=tag))

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    if preview:
        from spheretrace.preview.display import show_preview

        show_preview(framebuffer, title=f"Sphere - {cols}x{rows}")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

    ti.init(arch=ti.gpu if args.arch == "gpu" else ti.cpu)
    if not args.quiet:
        print(f"Using {args.arch.upper()} backend")

    try:
        render_sphere(
            rows=args.rows,
            cols=args.cols,
            max_steps=args.max_steps,
            output_path=args.output,
            tag=args.tag,
            preview=args.preview,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
