"""Core rendering module.

Components:
    ray: Ray and interval data structures, vector and sampling utilities
    shading: Ray coloring with pluggable shading modes and miss colors
    integrator: The scan loop turning a camera and scene into pixels

All per-ray work runs in Taichi functions; kernels serialize their pixel
loops so output is produced in raster order.
"""

from .ray import (
    Interval,
    Ray,
    dot,
    interval_surrounds,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    sample_square,
    schlick_fresnel,
    vec3,
)

# Note: shading and integrator are NOT imported here to avoid circular imports.
# Import directly from src.tracer.core.shading or src.tracer.core.integrator when needed.

__all__ = [
    "Ray",
    "Interval",
    "ray_at",
    "make_ray",
    "interval_surrounds",
    "vec3",
    "length_squared",
    "normalize",
    "dot",
    "reflect",
    "refract",
    "schlick_fresnel",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "sample_square",
]
