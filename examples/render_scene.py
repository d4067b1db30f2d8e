#!/usr/bin/env python3
"""Render one of the preset scenes to a plain PPM image.

Usage:
    python -m examples.render_scene [options]

Options:
    --scene NAME        Preset scene (default: materials)
    --width WIDTH       Image width in pixels (default: 400)
    --aspect RATIO      Width / height ratio (default: 16/9)
    --samples SAMPLES   Samples per pixel (default: 100)
    --max-depth DEPTH   Bounce budget per ray (default: 50)
    --shading MODE      normals, diffuse or material (default: the scene's own)
    --background R G B  Solid miss color instead of the sky gradient
    --seed SEED         Random seed (default: 42)
    --output OUTPUT     Output PPM path (default: image.ppm)
    --png PNG           Also save a PNG copy
    --quiet             Suppress progress output

Example:
    python -m examples.render_scene --scene two_spheres --samples 10 --png out.png
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti

# Kept in sync with src.tracer.scene.presets.PRESETS, which cannot be imported
# before Taichi is initialized
SCENE_CHOICES = ("materials", "single_sphere", "two_spheres")
SHADING_CHOICES = ("normals", "diffuse", "material")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a preset scene to a PPM image.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=SCENE_CHOICES,
        default="materials",
        help="Preset scene (default: materials)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--aspect",
        type=float,
        default=16.0 / 9.0,
        help="Width / height ratio (default: 16/9)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Bounce budget per ray (default: 50)",
    )
    parser.add_argument(
        "--shading",
        choices=SHADING_CHOICES,
        default=None,
        help="Shading mode (default: the scene's own)",
    )
    parser.add_argument(
        "--background",
        type=float,
        nargs=3,
        metavar=("R", "G", "B"),
        default=None,
        help="Solid miss color instead of the sky gradient",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed (default: 42)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="image.ppm",
        help="Output PPM path (default: image.ppm)",
    )
    parser.add_argument(
        "--png",
        type=str,
        default=None,
        help="Also save a PNG copy to this path",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def render_scene(
    scene_name: str = "materials",
    width: int = 400,
    aspect_ratio: float = 16.0 / 9.0,
    samples_per_pixel: int = 100,
    max_depth: int = 50,
    shading: str | None = None,
    background: tuple[float, float, float] | None = None,
    output_path: str = "image.ppm",
    png_path: str | None = None,
    quiet: bool = False,
) -> Path:
    """Render a preset scene and save it.

    Returns:
        Path to the saved PPM file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.tracer.camera.camera import Camera
    from src.tracer.core.integrator import render_to_file
    from src.tracer.core.shading import ShadingMode
    from src.tracer.preview.export import read_ppm, save_png
    from src.tracer.scene.presets import PRESETS

    preset = PRESETS[scene_name]
    world = preset.build()
    mode = preset.shading if shading is None else ShadingMode[shading.upper()]

    camera = Camera(
        aspect_ratio=aspect_ratio,
        image_width=width,
        samples_per_pixel=samples_per_pixel,
        max_depth=max_depth,
        shading=mode,
        background=background,
    )
    camera.validate()

    if not quiet:
        print(
            f"Rendering '{scene_name}' ({width}x{camera.image_height}, "
            f"{samples_per_pixel} spp, {mode.name.lower()} shading)...",
            file=sys.stderr,
        )

    start_time = time.time()

    def progress_callback(rows_done: int, height: int) -> None:
        if not quiet:
            print(
                f"\r  Scanlines remaining: {height - rows_done} ",
                end="",
                file=sys.stderr,
                flush=True,
            )

    output_file = Path(output_path)
    render_to_file(camera, world, output_file, callback=progress_callback)

    if png_path is not None:
        save_png(read_ppm(output_file), png_path)

    total_time = time.time() - start_time
    if not quiet:
        print("\r  Done.                    ", file=sys.stderr)
        print(f"Saved to: {output_file.absolute()}", file=sys.stderr)
        if png_path is not None:
            print(f"PNG copy: {Path(png_path).absolute()}", file=sys.stderr)
        print(f"Total time: {total_time:.2f}s", file=sys.stderr)

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    ti.init(arch=ti.cpu, random_seed=args.seed)

    try:
        render_scene(
            scene_name=args.scene,
            width=args.width,
            aspect_ratio=args.aspect,
            samples_per_pixel=args.samples,
            max_depth=args.max_depth,
            shading=args.shading,
            background=tuple(args.background) if args.background else None,
            output_path=args.output,
            png_path=args.png,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
