"""Dielectric (glass/water) material implementation.

Dielectrics either reflect or refract an incoming ray:
    - Snell's law gives the refracted direction: n1 sin(theta1) = n2 sin(theta2)
    - Total internal reflection happens when the refracted sine would exceed 1
    - Schlick's approximation gives the reflection probability, which grows
      toward grazing angles

The choice between reflection and refraction is made at random with the
Fresnel probability, so averaged over many samples the surface splits energy
correctly while each ray follows a single path.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_dielectric(
    >>> #     refraction_index, incident_dir, normal, front_face
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from src.tracer.core.ray import reflect, refract, schlick_fresnel

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def _refraction_ratio(refraction_index: ti.f32, front_face: ti.i32) -> ti.f32:
    ratio = 1.0 / refraction_index
    if front_face == 0:
        ratio = refraction_index
    return ratio


@ti.func
def fresnel_reflectance(
    refraction_index: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.f32:
    """Reflection probability from Schlick's approximation."""
    ratio = _refraction_ratio(refraction_index, front_face)
    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    return schlick_fresnel(cos_theta, ratio)


@ti.func
def scatter_dielectric(
    refraction_index: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Compute the scattered ray direction for a dielectric surface.

    Args:
        refraction_index: Refractive index of the material.
        incident_direction: The incoming ray direction (normalized).
        normal: The unit surface normal, facing the incoming ray.
        front_face: 1 if the ray enters the material from outside,
            0 if it is leaving the material from within.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where:
        - scattered_direction: The reflected or refracted direction (normalized).
        - attenuation: White; clear dielectrics absorb nothing.
        - did_scatter: Always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    ratio = _refraction_ratio(refraction_index, front_face)

    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    sin_theta = tm.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    cannot_refract = ratio * sin_theta > 1.0

    scattered_direction = vec3(0.0, 0.0, 0.0)
    reflectance = fresnel_reflectance(refraction_index, incident_direction, normal, front_face)
    if cannot_refract or reflectance > ti.random(ti.f32):
        scattered_direction = reflect(incident_direction, normal)
    else:
        scattered_direction = refract(incident_direction, normal, ratio)

    scattered_direction = tm.normalize(scattered_direction)
    did_scatter = 1

    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

# Storage for dielectric material properties
dielectric_indices = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def validate_refraction_index(refraction_index: float) -> None:
    """Raise ValueError unless the refractive index is positive."""
    if refraction_index <= 0.0:
        raise ValueError(
            f"Refraction index = {refraction_index} must be positive."
        )


def add_dielectric_material(refraction_index: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        refraction_index: Refractive index relative to the surrounding
            medium. Default is 1.5 (typical glass). Values below 1 model a
            less dense pocket, e.g. an air bubble in glass (1.0 / 1.5).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If refraction_index is not positive.
    """
    validate_refraction_index(refraction_index)

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_indices[idx] = refraction_index
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_refraction_index(material_idx: ti.i32) -> ti.f32:
    """Get the refractive index for a dielectric material by index."""
    return dielectric_indices[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Scatter off a registered dielectric material.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter).
    """
    refraction_index = get_dielectric_refraction_index(material_idx)
    return scatter_dielectric(refraction_index, incident_direction, normal, front_face)
