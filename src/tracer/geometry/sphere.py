"""Sphere primitive with ray-sphere intersection.

This module provides the Sphere and HitRecord dataclasses and the
intersection routine used by the scene query. The quadratic is solved in its
reduced ("half-b") form, which needs one fewer multiplication and loses less
precision than the textbook b^2 - 4ac discriminant.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.geometry.sphere import Sphere, HitRecord, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import Interval, Ray, interval_surrounds, ray_at

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere. A radius of zero or less is a
            degenerate sphere that is never hit.
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            Only valid if hit == 1.
        point: The 3D point where the ray intersected the sphere.
            Only valid if hit == 1.
        normal: The unit surface normal at the intersection point, oriented
            against the incident ray. Only valid if hit == 1.
        front_face: 1 if the ray arrived from outside the sphere (the
            outward normal already faced the ray), 0 if it arrived from
            inside. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, interval: Interval) -> HitRecord:
    """Test for ray-sphere intersection.

    Solves |origin + t * direction - center|^2 = radius^2, written as

        a*t^2 - 2*h*t + c = 0

    where:
        oc = center - origin
        a = dot(direction, direction)
        h = dot(direction, oc)
        c = dot(oc, oc) - radius^2

    The roots are (h -/+ sqrt(h^2 - a*c)) / a. The nearer root is tried
    first and the farther one only if the nearer lies outside the interval.
    A tangent ray (zero discriminant) yields its single root.

    Args:
        ray: The ray to test. The direction need not be normalized.
        sphere: The sphere to test intersection against.
        interval: Accepted parameter range, exclusive at both ends.

    Returns:
        A HitRecord containing intersection information. Check the hit field
        to determine if an intersection occurred.
    """
    oc = sphere.center - ray.origin
    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    # Zero-length directions and zero-radius spheres never produce a hit
    if a > 0.0 and sphere.radius > 0.0 and discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        root = (h - sqrt_d) / a
        valid = interval_surrounds(interval, root)
        if valid == 0:
            root = (h + sqrt_d) / a
            valid = interval_surrounds(interval, root)

        if valid == 1:
            did_hit = 1
            hit_t = root
            hit_point = ray_at(ray, root)

            outward_normal = (hit_point - sphere.center) / sphere.radius
            if tm.dot(ray.direction, outward_normal) > 0.0:
                is_front_face = 0
                hit_normal = -outward_normal
            else:
                is_front_face = 1
                hit_normal = outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )

