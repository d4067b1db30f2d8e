"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection
    hittable: Python-side scene description (spheres and nested lists)

Intersection routines are Taichi functions (@ti.func). The hittable
classes describe a world in Python and upload it to scene storage.
"""

from .hittable import NO_MATERIAL, Hittable, HittableList, SphereInfo
from .sphere import HitRecord, Sphere, hit_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "Hittable",
    "HittableList",
    "SphereInfo",
    "NO_MATERIAL",
]
