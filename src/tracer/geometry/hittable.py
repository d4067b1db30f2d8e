"""Python-side scene description: spheres and hittable lists.

The renderer intersects rays against flat Taichi fields (see
src.tracer.scene.intersection). This module provides the objects callers use
to describe a world before it is uploaded to those fields:

    SphereInfo: a single sphere with an optional material ID.
    HittableList: an ordered collection of hittables, which may nest.

Both share the Hittable interface: primitives() flattens the tree in
depth-first order, upload() replaces the stored scene with it, and hit()
answers the nearest-hit query for a single ray.

Example:
    >>> world = HittableList()
    >>> world.add(SphereInfo(center=(0.0, 0.0, -1.0), radius=0.5))
    >>> world.add(SphereInfo(center=(0.0, -100.5, -1.0), radius=100.0))
    >>> world.hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)).t
    0.5
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.tracer.scene.intersection import HitResult

NO_MATERIAL = -1


class Hittable:
    """Anything a ray can be intersected with."""

    def primitives(self) -> Iterator[SphereInfo]:
        """Yield the spheres making up this hittable, in storage order."""
        raise NotImplementedError

    def upload(self) -> int:
        """Replace the stored scene with this hittable's spheres.

        Returns:
            The number of spheres uploaded.

        Raises:
            RuntimeError: If the scene holds more spheres than can be stored.
        """
        from src.tracer.scene.intersection import add_sphere, clear_scene

        clear_scene()
        count = 0
        for sphere in self.primitives():
            add_sphere(sphere.center, sphere.radius, sphere.material_id)
            count += 1
        return count

    def hit(
        self,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
        t_min: float = 0.0,
        t_max: float | None = None,
    ) -> HitResult | None:
        """Find the nearest intersection of a ray with this hittable.

        Args:
            origin: Ray origin (x, y, z).
            direction: Ray direction (x, y, z); need not be normalized.
            t_min: Lower bound of the accepted parameter range (exclusive).
            t_max: Upper bound (exclusive). Defaults to effectively infinite.

        Returns:
            The nearest HitResult, or None if the ray misses.
        """
        from src.tracer.scene.intersection import T_MAX, query_hit

        self.upload()
        return query_hit(origin, direction, t_min, T_MAX if t_max is None else t_max)


@dataclass(frozen=True)
class SphereInfo(Hittable):
    """A sphere in the scene description.

    Attributes:
        center: The center of the sphere.
        radius: The radius of the sphere. Zero gives a point that is never hit.
        material_id: Unified material ID, or NO_MATERIAL for shading modes
            that do not consult materials.
    """

    center: tuple[float, float, float]
    radius: float
    material_id: int = NO_MATERIAL

    def __post_init__(self) -> None:
        if self.radius < 0.0:
            raise ValueError(f"Sphere radius must be non-negative, got {self.radius}")

    def primitives(self) -> Iterator[SphereInfo]:
        yield self


class HittableList(Hittable):
    """An ordered collection of hittables.

    Children may be spheres or other lists. The same child may appear in
    several lists, but a list may never contain itself, directly or through
    a descendant.

    Attributes:
        objects: The children in insertion order.
    """

    def __init__(self, objects: list[Hittable] | None = None) -> None:
        self.objects: list[Hittable] = []
        for obj in objects or []:
            self.add(obj)

    def add(self, obj: Hittable) -> None:
        """Append a child.

        Raises:
            ValueError: If adding obj would create a cycle.
        """
        if isinstance(obj, HittableList) and (obj is self or obj._contains_list(self)):
            raise ValueError("A HittableList cannot contain itself")
        self.objects.append(obj)

    def clear(self) -> None:
        """Remove all children."""
        self.objects.clear()

    def _contains_list(self, target: HittableList) -> bool:
        for obj in self.objects:
            if isinstance(obj, HittableList) and (obj is target or obj._contains_list(target)):
                return True
        return False

    def primitives(self) -> Iterator[SphereInfo]:
        for obj in self.objects:
            yield from obj.primitives()

    def __len__(self) -> int:
        return len(self.objects)

    def __repr__(self) -> str:
        return f"HittableList(objects={len(self.objects)})"
