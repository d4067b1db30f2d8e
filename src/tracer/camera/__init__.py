"""Camera module for view and ray generation.

Components:
    camera: Camera settings, derived viewport geometry, and ray generation

Pixel coordinates:
    i in [0, image_width): left to right across the image
    j in [0, image_height): top to bottom down the image
"""

from .camera import (
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    Camera,
    CameraGeometry,
    compute_geometry,
    get_ray,
    setup_camera,
)

__all__ = [
    "Camera",
    "CameraGeometry",
    "compute_geometry",
    "setup_camera",
    "get_ray",
    "MAX_IMAGE_WIDTH",
    "MAX_IMAGE_HEIGHT",
]
