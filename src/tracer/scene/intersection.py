"""Scene-level primitive storage and nearest-hit intersection.

This module stores the scene's spheres in Taichi fields and answers the
geometry query "what is the nearest surface this ray hits inside the given
interval". The query walks every sphere once, narrowing the interval's upper
bound to the closest hit found so far, so no sorting is needed.

Each primitive carries a material ID (an index into the material registry)
so that many primitives can share one material.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.scene.intersection import add_sphere, clear_scene, query_hit
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
    >>> query_hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)).t
    0.5
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import Interval, Ray
from src.tracer.geometry.hittable import NO_MATERIAL
from src.tracer.geometry.sphere import HitRecord, Sphere, hit_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Upper bound used for "infinitely far" intersections
T_MAX = 1e10


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Extends the basic HitRecord with material_id for scene-level queries.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the surface.
        normal: The unit surface normal, facing against the incident ray.
        front_face: Whether the ray hit the front face (1) or back face (0).
        material_id: The material ID of the hit primitive.
            NO_MATERIAL (-1) for misses and for primitives without a material.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all primitives from the scene.

    Resets the primitive count to zero. The actual field data is not
    cleared but will be overwritten when new primitives are added.
    """
    num_spheres[None] = 0


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    material_id: int = NO_MATERIAL,
) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere. Zero or negative radii are stored
            but never produce hits.
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(center[0], center[1], center[2])
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


@ti.func
def _hit_record_to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    """Convert a HitRecord to a SceneHitRecord with material ID."""
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=NO_MATERIAL,
    )


@ti.func
def hit_world(ray: Ray, interval: Interval) -> SceneHitRecord:
    """Find the nearest intersection of a ray with the scene.

    Tests every sphere once. After each hit the upper bound of the search
    interval shrinks to that hit's t, so later spheres only count when they
    are strictly closer.

    Args:
        ray: The ray to trace.
        interval: Accepted parameter range, exclusive at both ends.

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record if
        no intersection was found.
    """
    closest_t = interval.t_max
    result = _make_miss_record()

    n_spheres = num_spheres[None]
    for i in range(n_spheres):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        rec = hit_sphere(ray, sphere, Interval(t_min=interval.t_min, t_max=closest_t))
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, sphere_material_ids[i])

    return result


# =============================================================================
# Python-side Query
# =============================================================================


@dataclass(frozen=True)
class HitResult:
    """Python-side copy of a scene intersection.

    Attributes:
        t: Ray parameter of the hit.
        point: Hit point (x, y, z).
        normal: Unit normal facing against the ray.
        front_face: True if the ray hit the outside of the surface.
        material_id: Material of the hit primitive, NO_MATERIAL if none.
    """

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    front_face: bool
    material_id: int


_query_record = SceneHitRecord.field(shape=())


@ti.kernel
def _query_hit_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
):
    ray = Ray(origin=vec3(ox, oy, oz), direction=vec3(dx, dy, dz))
    _query_record[None] = hit_world(ray, Interval(t_min=t_min, t_max=t_max))


def query_hit(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    t_min: float = 0.0,
    t_max: float = T_MAX,
) -> HitResult | None:
    """Intersect a ray with the currently stored scene from Python.

    Args:
        origin: Ray origin (x, y, z).
        direction: Ray direction (x, y, z); need not be normalized.
        t_min: Lower bound of the accepted parameter range (exclusive).
        t_max: Upper bound of the accepted parameter range (exclusive).

    Returns:
        The nearest hit as a HitResult, or None if the ray misses.
    """
    _query_hit_kernel(
        origin[0], origin[1], origin[2],
        direction[0], direction[1], direction[2],
        t_min, t_max,
    )
    if _query_record.hit[None] == 0:
        return None
    point = _query_record.point[None]
    normal = _query_record.normal[None]
    return HitResult(
        t=float(_query_record.t[None]),
        point=(float(point[0]), float(point[1]), float(point[2])),
        normal=(float(normal[0]), float(normal[1]), float(normal[2])),
        front_face=bool(_query_record.front_face[None]),
        material_id=int(_query_record.material_id[None]),
    )
