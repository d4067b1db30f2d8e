"""Ray shading: turning a camera ray into a color.

A ray that escapes the scene picks up the miss color (the sky gradient by
default). A ray that hits a surface is shaded according to the active
shading mode:

    NORMALS:  the surface normal mapped to RGB, no bounce
    DIFFUSE:  a fixed 50% grey diffuse bounce, ignoring materials
    MATERIAL: the hit sphere's material decides the bounce

Bounces continue until the ray escapes, is absorbed, or runs out of depth.
Taichi functions cannot recurse, so the bounce chain is evaluated as a loop
that carries the product of attenuations along the path (the throughput).
This is the same color the recursive formulation

    color(ray, depth) = attenuation * color(scattered, depth - 1)

produces for the same sequence of random numbers.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.core.shading import trace_ray
    >>> trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), depth=10)
    (0.5, 0.7, 1.0)
"""

from enum import IntEnum
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import Interval, Ray
from src.tracer.materials.dielectric import scatter_dielectric_by_id
from src.tracer.materials.lambertian import scatter_lambertian, scatter_lambertian_by_id
from src.tracer.materials.metal import scatter_metal_by_id
from src.tracer.scene.intersection import T_MAX, SceneHitRecord, hit_world
from src.tracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

if TYPE_CHECKING:
    from src.tracer.geometry.hittable import Hittable

# Type alias for 3D vectors
vec3 = tm.vec3


class ShadingMode(IntEnum):
    """What the shader does when a ray hits a surface."""

    NORMALS = 0
    DIFFUSE = 1
    MATERIAL = 2


# Minimum hit distance for every ray, so a bounce does not re-hit its origin
SHADOW_EPSILON = 1e-3

# Sky gradient endpoints
SKY_HORIZON = (1.0, 1.0, 1.0)
SKY_ZENITH = (0.5, 0.7, 1.0)

# Attenuation of the fixed grey diffuse bounce
DIFFUSE_GREY = 0.5

_BACKGROUND_SKY = 0
_BACKGROUND_SOLID = 1

# Shader state (configured by configure_shader)
_shading_mode = ti.field(dtype=ti.i32, shape=())
_background_mode = ti.field(dtype=ti.i32, shape=())
_background_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_t_min = ti.field(dtype=ti.f32, shape=())


def configure_shader(
    shading: ShadingMode = ShadingMode.MATERIAL,
    background: tuple[float, float, float] | None = None,
    shadow_epsilon: float = SHADOW_EPSILON,
) -> None:
    """Set the shading mode, miss color, and minimum hit distance.

    Args:
        shading: What to do when a ray hits a surface.
        background: Solid miss color, or None for the sky gradient.
        shadow_epsilon: Hits closer than this to a ray's origin are ignored.

    Raises:
        ValueError: If shadow_epsilon is negative or background does not
            have three components.
    """
    if shadow_epsilon < 0.0:
        raise ValueError(f"shadow_epsilon must be non-negative, got {shadow_epsilon}")

    _shading_mode[None] = int(ShadingMode(shading))
    _t_min[None] = shadow_epsilon

    if background is None:
        _background_mode[None] = _BACKGROUND_SKY
    else:
        if len(background) != 3:
            raise ValueError(f"Background must have 3 components, got {len(background)}")
        _background_mode[None] = _BACKGROUND_SOLID
        _background_color[None] = [background[0], background[1], background[2]]


@ti.func
def sky_gradient(direction: vec3) -> vec3:
    """Blend white and light blue by the height of the unit direction.

    Zero-length directions get the color halfway between the two.
    """
    len_dir = tm.length(direction)
    a = 0.5
    if len_dir > 0.0:
        a = 0.5 * (direction.y / len_dir + 1.0)
    horizon = vec3(SKY_HORIZON[0], SKY_HORIZON[1], SKY_HORIZON[2])
    zenith = vec3(SKY_ZENITH[0], SKY_ZENITH[1], SKY_ZENITH[2])
    return (1.0 - a) * horizon + a * zenith


@ti.func
def miss_color(direction: vec3) -> vec3:
    """Color of a ray that leaves the scene."""
    color = vec3(0.0, 0.0, 0.0)
    if _background_mode[None] == _BACKGROUND_SOLID:
        color = _background_color[None]
    else:
        color = sky_gradient(direction)
    return color


@ti.func
def scatter_material(rec: SceneHitRecord, unit_direction: vec3):
    """Dispatch to the scatter function of the hit sphere's material.

    Spheres without a material scatter like the fixed grey diffuse surface.

    Args:
        rec: The hit being shaded.
        unit_direction: The incoming ray direction (normalized).

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where:
        - scattered_direction: The new ray direction.
        - attenuation: The color attenuation for this bounce.
        - did_scatter: 1 if ray scattered, 0 if absorbed.
    """
    mat_type = get_material_type(rec.material_id)
    type_index = get_material_type_index(rec.material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 1

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation = scatter_lambertian_by_id(type_index, rec.normal)

    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter = scatter_metal_by_id(
            type_index, unit_direction, rec.normal
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter = scatter_dielectric_by_id(
            type_index, unit_direction, rec.normal, rec.front_face
        )

    else:
        scattered_direction, attenuation = scatter_lambertian(
            vec3(DIFFUSE_GREY, DIFFUSE_GREY, DIFFUSE_GREY), rec.normal
        )

    return scattered_direction, attenuation, did_scatter


@ti.func
def ray_color(ray: Ray, depth: ti.i32) -> vec3:
    """Compute the color seen along a ray.

    Args:
        ray: The ray to shade. Its direction need not be normalized.
        depth: How many more bounces the ray may take. A ray that hits a
            surface with no depth left contributes black; a ray that misses
            always gets the miss color.

    Returns:
        The linear RGB color carried back along the ray.
    """
    mode = _shading_mode[None]
    t_min = _t_min[None]

    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    origin = ray.origin
    direction = ray.direction
    remaining = depth
    active = 1

    while active == 1:
        rec = hit_world(Ray(origin=origin, direction=direction), Interval(t_min=t_min, t_max=T_MAX))

        if rec.hit == 0:
            color = throughput * miss_color(direction)
            active = 0
        elif remaining <= 0:
            active = 0
        elif mode == int(ShadingMode.NORMALS):
            color = throughput * 0.5 * (rec.normal + vec3(1.0, 1.0, 1.0))
            active = 0
        else:
            scattered_direction = vec3(0.0, 0.0, 0.0)
            attenuation = vec3(0.0, 0.0, 0.0)
            did_scatter = 1

            if mode == int(ShadingMode.DIFFUSE):
                scattered_direction, attenuation = scatter_lambertian(
                    vec3(DIFFUSE_GREY, DIFFUSE_GREY, DIFFUSE_GREY), rec.normal
                )
            else:
                scattered_direction, attenuation, did_scatter = scatter_material(
                    rec, tm.normalize(direction)
                )

            if did_scatter == 0:
                active = 0
            else:
                throughput *= attenuation
                origin = rec.point
                direction = scattered_direction
                remaining -= 1

    return color


# =============================================================================
# Python-side Access
# =============================================================================


@ti.kernel
def _trace_ray_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    depth: ti.i32,
) -> vec3:
    ray = Ray(origin=vec3(ox, oy, oz), direction=vec3(dx, dy, dz))
    return ray_color(ray, depth)


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int,
    *,
    world: "Hittable | None" = None,
    shading: ShadingMode = ShadingMode.MATERIAL,
    background: tuple[float, float, float] | None = None,
    shadow_epsilon: float = SHADOW_EPSILON,
) -> tuple[float, float, float]:
    """Shade a single ray from Python.

    Args:
        origin: Ray origin (x, y, z).
        direction: Ray direction (x, y, z).
        depth: Bounce budget for the ray.
        world: Scene to upload first. None shades against the scene
            already in storage.
        shading: Shading mode.
        background: Solid miss color, or None for the sky gradient.
        shadow_epsilon: Minimum hit distance.

    Returns:
        The linear (R, G, B) color.

    Raises:
        ValueError: If depth is negative.
    """
    if depth < 0:
        raise ValueError(f"depth must be non-negative, got {depth}")

    if world is not None:
        world.upload()
    configure_shader(shading, background, shadow_epsilon)

    color = _trace_ray_kernel(
        origin[0], origin[1], origin[2],
        direction[0], direction[1], direction[2],
        depth,
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def sky_color(direction: tuple[float, float, float]) -> tuple[float, float, float]:
    """NumPy version of the sky gradient, for checking renders from Python."""
    d = np.asarray(direction, dtype=np.float64)
    norm = np.linalg.norm(d)
    a = 0.5 if norm == 0.0 else 0.5 * (d[1] / norm + 1.0)
    color = (1.0 - a) * np.asarray(SKY_HORIZON) + a * np.asarray(SKY_ZENITH)
    return (float(color[0]), float(color[1]), float(color[2]))
