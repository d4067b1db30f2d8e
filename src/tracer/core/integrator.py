"""Scan loop: rendering a camera's view of a scene into pixels.

Each pixel's color is the mean of ``samples_per_pixel`` camera rays shaded
with ``max_depth`` bounces. With more than one sample the rays are jittered
across the pixel square for antialiasing.

Rendering runs one scanline per kernel launch, with the pixel loop
serialized so that pixels are produced in raster order (top row first, left
to right) and the random stream is consumed in the same order on every run.
Between scanlines control returns to Python, which reports progress and
streams the finished row out.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.camera.camera import Camera
    >>> from src.tracer.core.integrator import render_to_file
    >>> from src.tracer.scene.presets import create_two_sphere_scene
    >>>
    >>> world = create_two_sphere_scene()
    >>> camera = Camera(aspect_ratio=16.0 / 9.0, image_width=400)
    >>> render_to_file(camera, world, "image.ppm")
"""

import os
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.tracer.camera.camera import MAX_IMAGE_WIDTH, Camera, CameraGeometry, get_ray, setup_camera
from src.tracer.core.shading import ray_color
from src.tracer.preview.display import color_to_rgb8
from src.tracer.preview.export import write_ppm

if TYPE_CHECKING:
    from src.tracer.geometry.hittable import Hittable

# Type alias for 3D vectors
vec3 = tm.vec3

# Called with (rows_done, image_height) after each finished scanline
ProgressCallback = Callable[[int, int], None]

# One scanline of linear colors (preallocated to max width)
_row_buffer = ti.Vector.field(3, dtype=ti.f32, shape=MAX_IMAGE_WIDTH)


# =============================================================================
# Pixel Sampling
# =============================================================================


@ti.func
def render_pixel(i: ti.i32, j: ti.i32, samples_per_pixel: ti.i32, max_depth: ti.i32) -> vec3:
    """Average the colors of samples_per_pixel rays through pixel (i, j).

    Args:
        i: Pixel column (0 = left).
        j: Pixel row (0 = top).
        samples_per_pixel: Number of rays to average. 1 aims a single
            ray at the pixel center.
        max_depth: Bounce budget for each ray.

    Returns:
        The mean linear color.
    """
    jitter = 0
    if samples_per_pixel > 1:
        jitter = 1

    total = vec3(0.0, 0.0, 0.0)
    for _ in range(samples_per_pixel):
        total += ray_color(get_ray(i, j, jitter), max_depth)

    return total / ti.cast(samples_per_pixel, ti.f32)


@ti.kernel
def _render_row(j: ti.i32, width: ti.i32, samples_per_pixel: ti.i32, max_depth: ti.i32):
    """Render scanline j into the row buffer, left to right."""
    ti.loop_config(serialize=True)
    for i in range(width):
        _row_buffer[i] = render_pixel(i, j, samples_per_pixel, max_depth)


@ti.kernel
def _render_single_pixel(
    i: ti.i32, j: ti.i32, samples_per_pixel: ti.i32, max_depth: ti.i32
) -> vec3:
    return render_pixel(i, j, samples_per_pixel, max_depth)


# =============================================================================
# Public Rendering API
# =============================================================================


def _prepare(camera: Camera, world: "Hittable") -> CameraGeometry:
    geometry = setup_camera(camera)
    world.upload()
    return geometry


def render_scanline(camera: Camera, j: int) -> npt.NDArray[np.float32]:
    """Render one row of linear colors for a prepared camera and scene.

    The camera and scene must already be uploaded (see render_pixels).

    Returns:
        Array of shape (image_width, 3).
    """
    width = camera.image_width
    _render_row(j, width, camera.samples_per_pixel, camera.max_depth)
    return _row_buffer.to_numpy()[:width]


def _render_rows(
    camera: Camera,
    geometry: CameraGeometry,
    callback: ProgressCallback | None,
) -> Iterator[npt.NDArray[np.float32]]:
    height = geometry.image_height
    for j in range(height):
        row = render_scanline(camera, j)
        if callback is not None:
            callback(j + 1, height)
        yield row


def _encoded_pixels(
    camera: Camera,
    geometry: CameraGeometry,
    callback: ProgressCallback | None,
) -> Iterator[tuple[int, int, int]]:
    for row in _render_rows(camera, geometry, callback):
        for r, g, b in color_to_rgb8(row):
            yield (int(r), int(g), int(b))


def render_pixels(
    camera: Camera,
    world: "Hittable",
    callback: ProgressCallback | None = None,
) -> Iterator[tuple[int, int, int]]:
    """Render the scene and yield 8-bit RGB pixels in raster order.

    Rendering is lazy: each scanline is traced when the previous one has
    been consumed. Do not interleave two renders, they share the scene and
    camera storage.

    Args:
        camera: Camera configuration.
        world: Scene to render.
        callback: Optional progress callback, called with
            (rows_done, image_height) after each scanline.

    Yields:
        (r, g, b) tuples of ints in [0, 255].

    Raises:
        ValueError: If the camera settings are invalid.
        RuntimeError: If the scene exceeds storage capacity.
    """
    geometry = _prepare(camera, world)
    yield from _encoded_pixels(camera, geometry, callback)


def render_linear_image(
    camera: Camera,
    world: "Hittable",
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.float32]:
    """Render the scene to linear colors.

    Returns:
        Array of shape (image_height, image_width, 3) holding each pixel's
        mean sample color before gamma correction.
    """
    geometry = _prepare(camera, world)
    rows = list(_render_rows(camera, geometry, callback))
    return np.stack(rows).astype(np.float32)


def render_image(
    camera: Camera,
    world: "Hittable",
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.uint8]:
    """Render the scene to 8-bit gamma corrected colors.

    Returns:
        Array of shape (image_height, image_width, 3) with dtype uint8.
    """
    return color_to_rgb8(render_linear_image(camera, world, callback))


def sample_pixel(
    camera: Camera,
    world: "Hittable",
    i: int,
    j: int,
) -> tuple[float, float, float]:
    """Render a single pixel's linear color.

    Args:
        camera: Camera configuration.
        world: Scene to render.
        i: Pixel column (0 = left).
        j: Pixel row (0 = top).

    Returns:
        Tuple of (R, G, B) linear color values.

    Raises:
        ValueError: If the camera settings are invalid or (i, j) is
            outside the image.
    """
    geometry = _prepare(camera, world)
    if not (0 <= i < geometry.image_width and 0 <= j < geometry.image_height):
        raise ValueError(
            f"Pixel ({i}, {j}) is outside the "
            f"{geometry.image_width}x{geometry.image_height} image"
        )
    color = _render_single_pixel(i, j, camera.samples_per_pixel, camera.max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def render_to_file(
    camera: Camera,
    world: "Hittable",
    path: str | os.PathLike[str],
    callback: ProgressCallback | None = None,
) -> CameraGeometry:
    """Render the scene and write it as a plain PPM file.

    Returns:
        The camera geometry used for the render.

    Raises:
        ValueError: If the camera settings are invalid.
        OSError: If the file cannot be written.
    """
    geometry = _prepare(camera, world)
    write_ppm(
        _encoded_pixels(camera, geometry, callback),
        geometry.image_width,
        geometry.image_height,
        path,
    )
    return geometry
