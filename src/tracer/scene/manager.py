"""Unified scene manager coordinating primitives and materials.

This module provides a high-level scene-building API that coordinates the
scene description (a HittableList of spheres) with the material registries.
It tracks which material type (Lambertian, Metal, Dielectric) each unified
material ID corresponds to, enabling material dispatch in the shader.

The SceneManager maintains:
- A unified material_id space across all material types
- Mapping from material_id to (material_type, type_local_index)
- The world: an ordered HittableList whose spheres reference materials by ID
- Scene serialization/configuration support

Because primitives only store the material ID, any number of spheres can
share one material; its parameters live in exactly one registry slot.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> mat_id = scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
    >>> scene.add_sphere(center=(0, 0, -1), radius=0.5, material_id=mat_id)
    >>> scene.hit((0, 0, 0), (0, 0, -1)).material_id
    0
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti

from src.tracer.geometry.hittable import NO_MATERIAL, Hittable, HittableList, SphereInfo
from src.tracer.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    add_dielectric_material,
    clear_dielectric_materials,
    validate_refraction_index,
)
from src.tracer.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    add_lambertian_material,
    clear_lambertian_materials,
    validate_albedo,
)
from src.tracer.materials.metal import (
    MAX_METAL_MATERIALS,
    add_metal_material,
    clear_metal_materials,
    validate_fuzz,
)
from src.tracer.scene.intersection import MAX_SPHERES


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the shader to determine which
    scattering function to call.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all types
MAX_MATERIALS = 768  # 256 per type * 3 types

_TYPE_CAPACITY = {
    MaterialType.LAMBERTIAN: MAX_LAMBERTIAN_MATERIALS,
    MaterialType.METAL: MAX_METAL_MATERIALS,
    MaterialType.DIELECTRIC: MAX_DIELECTRIC_MATERIALS,
}

# Taichi fields for kernel-side material type lookup
# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


def clear_all_materials() -> None:
    """Clear every material registry and the unified ID mapping."""
    clear_lambertian_materials()
    clear_metal_materials()
    clear_dielectric_materials()
    _clear_material_tracking()


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Args:
        material_id: The unified material ID.

    Returns:
        The material type as an integer (see MaterialType enum).
        Returns -1 for invalid material IDs, including NO_MATERIAL.
    """
    result = -1
    if 0 <= material_id and material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index for a given material ID.

    Args:
        material_id: The unified material ID.

    Returns:
        The index into the type-specific material array.
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id and material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material (Lambertian, Metal, Dielectric).
        type_index: The index within the type-specific material array.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations, in world order.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


class SceneManager(Hittable):
    """Unified scene manager coordinating spheres and materials.

    The SceneManager is itself a Hittable: rendering it renders its world.
    Materials are kept on the manager and only written to kernel storage by
    upload(), so several scenes can be built and rendered in any order.

    Attributes:
        materials: List of MaterialInfo for all registered materials.
        world: The ordered HittableList of spheres in the scene.

    Example:
        >>> scene = SceneManager()
        >>> ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> glass = scene.add_dielectric_material(refraction_index=1.5)
        >>> scene.add_sphere((0, -100.5, -1), 100, ground)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
        >>> scene.add_sphere((-1, 0, -1), 0.5, glass)
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.world = HittableList()

    def clear(self) -> None:
        """Remove every material and sphere from this scene."""
        self.materials.clear()
        self.world.clear()

    def upload(self) -> int:
        """Replace the stored materials and spheres with this scene's.

        Returns:
            The number of spheres uploaded.

        Raises:
            RuntimeError: If the scene holds more spheres than can be stored.
        """
        clear_all_materials()
        for info in self.materials:
            if info.material_type == MaterialType.LAMBERTIAN:
                add_lambertian_material(**info.params)
            elif info.material_type == MaterialType.METAL:
                add_metal_material(**info.params)
            else:
                add_dielectric_material(**info.params)
            material_types[info.material_id] = int(info.material_type)
            material_type_indices[info.material_id] = info.type_index
        num_materials[None] = len(self.materials)
        return super().upload()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register(self, material_type: MaterialType, params: dict[str, Any]) -> int:
        """Assign the next unified material ID to a validated material."""
        material_id = len(self.materials)
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        type_index = sum(1 for info in self.materials if info.material_type == material_type)
        capacity = _TYPE_CAPACITY[material_type]
        if type_index >= capacity:
            raise RuntimeError(
                f"Maximum number of {material_type.name.lower()} materials ({capacity}) exceeded"
            )

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a Lambertian (diffuse) material to the scene.

        Args:
            albedo: The diffuse reflectance color as (R, G, B) tuple.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        validate_albedo(albedo)
        return self._register(MaterialType.LAMBERTIAN, {"albedo": tuple(albedo)})

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal (specular reflective) material to the scene.

        Args:
            albedo: The reflective color as (R, G, B) tuple.
            fuzz: Reflection blur radius in [0, 1]. Default is 0 (perfect mirror).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
            ValueError: If fuzz is outside [0, 1].
        """
        validate_albedo(albedo)
        validate_fuzz(fuzz)
        return self._register(MaterialType.METAL, {"albedo": tuple(albedo), "fuzz": fuzz})

    def add_dielectric_material(self, refraction_index: float = 1.5) -> int:
        """Add a dielectric (glass/water) material to the scene.

        Args:
            refraction_index: Refractive index. Default is 1.5 (glass).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If refraction_index is not positive.
        """
        validate_refraction_index(refraction_index)
        return self._register(MaterialType.DIELECTRIC, {"refraction_index": refraction_index})

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return len(self.materials)

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material type for a given material ID (Python side).

        For kernel-side lookup, use the get_material_type() Taichi function.
        """
        info = self.get_material_info(material_id)
        return None if info is None else info.material_type

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add(self, obj: Hittable) -> None:
        """Append a hittable (sphere or list) to the world.

        Raises:
            ValueError: If any sphere references an unknown material, or
                obj is this scene.
        """
        if obj is self:
            raise ValueError("A SceneManager cannot contain itself")
        for sphere in obj.primitives():
            self._check_material_id(sphere.material_id)
        self.world.add(obj)

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int = NO_MATERIAL,
    ) -> int:
        """Add a sphere to the world.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (non-negative).
            material_id: The unified material ID, or NO_MATERIAL.

        Returns:
            The index the sphere will occupy in scene storage.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If material_id is invalid or radius is negative.
        """
        index = self.get_sphere_count()
        if index >= MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
        self.add(SphereInfo(center=tuple(center), radius=radius, material_id=material_id))
        return index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        refraction_index: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(refraction_index)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def _check_material_id(self, material_id: int) -> None:
        if material_id != NO_MATERIAL and not 0 <= material_id < len(self.materials):
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Hittable Interface
    # =========================================================================

    def primitives(self) -> Iterator[SphereInfo]:
        return self.world.primitives()

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the world."""
        return sum(1 for _ in self.world.primitives())

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object.

        Nested lists are flattened; sphere order is preserved.
        """
        config = SceneConfig()

        for mat in self.materials:
            mat_config: dict[str, Any] = {
                "type": mat.material_type.name.lower(),
            }
            for key, value in mat.params.items():
                mat_config[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(mat_config)

        for sphere in self.world.primitives():
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        # Materials first, spheres reference them by ID
        for mat_config in config.materials:
            mat_type = mat_config.get("type", "").lower()
            if mat_type == "lambertian":
                albedo_list = mat_config.get("albedo", [0.5, 0.5, 0.5])
                self.add_lambertian_material((albedo_list[0], albedo_list[1], albedo_list[2]))
            elif mat_type == "metal":
                albedo_list = mat_config.get("albedo", [0.8, 0.8, 0.8])
                self.add_metal_material(
                    (albedo_list[0], albedo_list[1], albedo_list[2]),
                    mat_config.get("fuzz", 0.0),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat_config.get("refraction_index", 1.5))
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        for sphere_config in config.spheres:
            center_list = sphere_config.get("center", [0, 0, 0])
            self.add_sphere(
                (center_list[0], center_list[1], center_list[2]),
                sphere_config.get("radius", 1.0),
                sphere_config.get("material_id", NO_MATERIAL),
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
        )
        self.from_config(config)

    def __repr__(self) -> str:
        return (
            f"SceneManager(materials={len(self.materials)}, "
            f"spheres={self.get_sphere_count()})"
        )
