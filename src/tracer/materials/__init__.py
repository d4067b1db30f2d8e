"""Materials module for surface scattering models.

This module implements the materials a ray can bounce off:

Components:
    lambertian: Ideal diffuse reflection (albedo)
    metal: Mirror reflection with optional fuzz
    dielectric: Glass-like refraction with Schlick reflectance

Each material provides a scatter function returning the outgoing direction,
the color attenuation, and (for materials that can absorb) a did_scatter
flag. Parameters are stored in per-type registries so that any number of
primitives can share one material by ID.

All scattering is implemented as Taichi functions.
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    fresnel_reflectance,
    get_dielectric_material_count,
    get_dielectric_refraction_index,
    scatter_dielectric,
    scatter_dielectric_by_id,
    validate_refraction_index,
)
from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    scatter_lambertian,
    scatter_lambertian_by_id,
    validate_albedo,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
    scatter_metal_by_id,
    validate_fuzz,
)

__all__ = [
    # Lambertian
    "scatter_lambertian",
    "scatter_lambertian_by_id",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_albedo",
    "validate_albedo",
    # Metal
    "scatter_metal",
    "scatter_metal_by_id",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_albedo",
    "get_metal_fuzz",
    "validate_fuzz",
    # Dielectric
    "scatter_dielectric",
    "scatter_dielectric_by_id",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "get_dielectric_refraction_index",
    "fresnel_reflectance",
    "validate_refraction_index",
]
