"""Camera configuration and primary ray generation.

The camera sits at ``lookfrom`` and looks toward ``lookat``, with ``vup``
fixing which way is up. It builds an orthonormal basis (u, v, w):
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport is a rectangle one unit in front of the camera, 2.0 units high
and as wide as the image's actual width/height ratio. Pixel (0, 0) is the
upper-left corner of the image; rows run top to bottom.

Derived geometry is computed once per render with NumPy and uploaded to
Taichi fields that the ray generator reads. The Camera dataclass itself is
never modified by rendering.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.camera.camera import Camera, setup_camera
    >>> camera = Camera(aspect_ratio=16.0 / 9.0, image_width=400)
    >>> geometry = setup_camera(camera)
    >>> geometry.image_height
    225
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import Ray, make_ray, sample_square
from src.tracer.core.shading import SHADOW_EPSILON, ShadingMode, configure_shader

# Type alias for 3D vectors
vec3 = tm.vec3

# Largest image the row buffer can hold (preallocated to avoid recompilation)
MAX_IMAGE_WIDTH = 4096
MAX_IMAGE_HEIGHT = 4096

# Distance from the camera center to the viewport
FOCAL_LENGTH = 1.0
VIEWPORT_HEIGHT = 2.0


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class Camera:
    """Render settings and view placement.

    Attributes:
        aspect_ratio: Requested image width divided by height.
        image_width: Image width in pixels.
        samples_per_pixel: Rays averaged per pixel. 1 disables jitter.
        max_depth: Bounce budget for each camera ray.
        shading: What the shader does on a hit.
        background: Solid miss color, or None for the sky gradient.
        shadow_epsilon: Minimum hit distance for every ray.
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation.
    """

    aspect_ratio: float = 1.0
    image_width: int = 100
    samples_per_pixel: int = 10
    max_depth: int = 10
    shading: ShadingMode = ShadingMode.MATERIAL
    background: tuple[float, float, float] | None = None
    shadow_epsilon: float = SHADOW_EPSILON
    lookfrom: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)

    @property
    def image_height(self) -> int:
        """Image height in pixels, never less than 1."""
        return max(1, int(self.image_width / self.aspect_ratio))

    def validate(self) -> None:
        """Check the settings before a render.

        Raises:
            ValueError: If any setting is out of range or the view basis
                is degenerate.
        """
        if not self.aspect_ratio > 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.image_width <= 0:
            raise ValueError(f"image_width must be positive, got {self.image_width}")
        if self.samples_per_pixel <= 0:
            raise ValueError(
                f"samples_per_pixel must be positive, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.shadow_epsilon < 0.0:
            raise ValueError(
                f"shadow_epsilon must be non-negative, got {self.shadow_epsilon}"
            )

        height = self.image_height
        if self.image_width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.image_width}x{height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )

        forward = np.subtract(self.lookfrom, self.lookat)
        if np.linalg.norm(forward) == 0.0:
            raise ValueError("lookfrom and lookat must be different points")
        if np.linalg.norm(np.cross(self.vup, forward)) == 0.0:
            raise ValueError("vup must not be parallel to the view direction")


@dataclass(frozen=True)
class CameraGeometry:
    """Per-render camera state derived from a Camera.

    Attributes:
        image_width: Image width in pixels.
        image_height: Image height in pixels.
        center: Camera position.
        pixel00_loc: Center of the upper-left pixel.
        pixel_delta_u: Offset from one pixel to the next one to the right.
        pixel_delta_v: Offset from one pixel to the next one below.
        viewport_u: Vector across the full viewport width.
        viewport_v: Vector down the full viewport height.
    """

    image_width: int
    image_height: int
    center: tuple[float, float, float]
    pixel00_loc: tuple[float, float, float]
    pixel_delta_u: tuple[float, float, float]
    pixel_delta_v: tuple[float, float, float]
    viewport_u: tuple[float, float, float]
    viewport_v: tuple[float, float, float]


def _as_tuple(v: np.ndarray) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


def compute_geometry(camera: Camera) -> CameraGeometry:
    """Derive image size and viewport placement from the camera settings.

    Args:
        camera: Camera configuration.

    Returns:
        The derived geometry.

    Raises:
        ValueError: If the camera settings are invalid.
    """
    camera.validate()

    width = camera.image_width
    height = camera.image_height

    # Use the ratio the integer image size actually has
    viewport_width = VIEWPORT_HEIGHT * width / height

    # Build orthonormal basis using NumPy (Python-side computation)
    center = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = center - lookat
    w = w / np.linalg.norm(w)
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    viewport_u = viewport_width * u
    # Image rows run downward
    viewport_v = VIEWPORT_HEIGHT * -v

    pixel_delta_u = viewport_u / width
    pixel_delta_v = viewport_v / height

    viewport_upper_left = center - FOCAL_LENGTH * w - viewport_u / 2.0 - viewport_v / 2.0
    pixel00_loc = viewport_upper_left + 0.5 * (pixel_delta_u + pixel_delta_v)

    return CameraGeometry(
        image_width=width,
        image_height=height,
        center=_as_tuple(center),
        pixel00_loc=_as_tuple(pixel00_loc),
        pixel_delta_u=_as_tuple(pixel_delta_u),
        pixel_delta_v=_as_tuple(pixel_delta_v),
        viewport_u=_as_tuple(viewport_u),
        viewport_v=_as_tuple(viewport_v),
    )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_center = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel00_loc = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_v = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_camera(camera: Camera) -> CameraGeometry:
    """Prepare the camera and shader for a render.

    Validates the settings, uploads the derived geometry to the fields the
    ray generator reads, and configures the shader from the camera's shading
    settings.

    Args:
        camera: Camera configuration.

    Returns:
        The derived geometry.

    Raises:
        ValueError: If the camera settings are invalid.
    """
    geometry = compute_geometry(camera)

    _camera_center[None] = list(geometry.center)
    _pixel00_loc[None] = list(geometry.pixel00_loc)
    _pixel_delta_u[None] = list(geometry.pixel_delta_u)
    _pixel_delta_v[None] = list(geometry.pixel_delta_v)

    configure_shader(camera.shading, camera.background, camera.shadow_epsilon)
    return geometry


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(i: ti.i32, j: ti.i32, jitter: ti.i32) -> Ray:
    """Generate a camera ray through pixel (i, j).

    Args:
        i: Pixel column (0 = left).
        j: Pixel row (0 = top).
        jitter: 1 to offset the sample point randomly within the pixel
            square, 0 to aim at the pixel center.

    Returns:
        A Ray from the camera center toward the sample point. The direction
        is not normalized.
    """
    offset = vec3(0.0, 0.0, 0.0)
    if jitter == 1:
        offset = sample_square()

    pixel_sample = (
        _pixel00_loc[None]
        + (ti.cast(i, ti.f32) + offset.x) * _pixel_delta_u[None]
        + (ti.cast(j, ti.f32) + offset.y) * _pixel_delta_v[None]
    )
    origin = _camera_center[None]
    return make_ray(origin, pixel_sample - origin)

