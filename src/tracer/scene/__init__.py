"""Scene module for scene storage, materials, and test scenes.

Components:
    intersection: Sphere storage in Taichi fields and nearest-hit queries
    manager: Unified scene manager coordinating spheres and materials
    presets: Ready-made test scenes

Scene data is organized for kernel access:
    - Structure-of-Arrays layout for geometric data
    - Contiguous material ID arrays
"""

from .intersection import (
    MAX_SPHERES,
    T_MAX,
    HitResult,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    hit_world,
    query_hit,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    clear_all_materials,
    get_material_type,
    get_material_type_index,
)

# Note: presets is NOT imported here to avoid circular imports with core.shading.
# Import directly from src.tracer.scene.presets when needed.

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "HitResult",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "hit_world",
    "query_hit",
    "MAX_SPHERES",
    "T_MAX",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "clear_all_materials",
    "get_material_type",
    "get_material_type_index",
]
