"""Ready-made test scenes.

The scenes progress from a single sphere to a small material showcase:

- single_sphere: one sphere of radius 0.5 at (0, 0, -1)
- two_spheres: the same sphere resting on a large "ground" sphere
- materials: ground, diffuse center, hollow glass left, fuzzy metal right

All scenes are framed for the default camera at the origin looking down -z.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.tracer.camera.camera import Camera
    >>> from src.tracer.core.shading import ShadingMode
    >>> from src.tracer.scene.presets import PRESETS
    >>>
    >>> preset = PRESETS["two_spheres"]
    >>> world = preset.build()
    >>> camera = Camera(shading=preset.shading)
"""

from collections.abc import Callable
from dataclasses import dataclass

from src.tracer.core.shading import ShadingMode
from src.tracer.geometry.hittable import Hittable, HittableList, SphereInfo
from src.tracer.scene.manager import SceneManager

# Sphere in front of the default camera
CENTER_SPHERE = ((0.0, 0.0, -1.0), 0.5)
# Large sphere whose top forms the ground just under the center sphere
GROUND_SPHERE = ((0.0, -100.5, -1.0), 100.0)


def create_single_sphere_scene() -> HittableList:
    """One sphere of radius 0.5 centered at (0, 0, -1)."""
    center, radius = CENTER_SPHERE
    return HittableList([SphereInfo(center=center, radius=radius)])


def create_two_sphere_scene() -> HittableList:
    """The center sphere resting on a ground sphere of radius 100."""
    world = create_single_sphere_scene()
    center, radius = GROUND_SPHERE
    world.add(SphereInfo(center=center, radius=radius))
    return world


def create_material_scene() -> SceneManager:
    """Four spheres showing each material on a yellowish ground.

    - ground: Lambertian (0.8, 0.8, 0.0)
    - center: Lambertian (0.1, 0.2, 0.5)
    - left: glass (1.5) with an air bubble inside, giving a hollow shell
    - right: gold metal (0.8, 0.6, 0.2) with fuzz 1.0

    Returns:
        A SceneManager holding the spheres and their materials.
    """
    scene = SceneManager()

    ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
    center = scene.add_lambertian_material(albedo=(0.1, 0.2, 0.5))
    glass = scene.add_dielectric_material(refraction_index=1.5)
    bubble = scene.add_dielectric_material(refraction_index=1.0 / 1.5)
    gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=1.0)

    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_sphere((0.0, 0.0, -1.2), 0.5, center)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.4, bubble)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, gold)

    return scene


@dataclass(frozen=True)
class ScenePreset:
    """A named scene and the shading mode it is meant to be viewed with.

    Attributes:
        build: Factory creating the scene.
        shading: Shading mode suited to the scene.
        description: One-line summary for listings.
    """

    build: Callable[[], Hittable]
    shading: ShadingMode
    description: str


PRESETS: dict[str, ScenePreset] = {
    "single_sphere": ScenePreset(
        build=create_single_sphere_scene,
        shading=ShadingMode.NORMALS,
        description="one sphere colored by its normals",
    ),
    "two_spheres": ScenePreset(
        build=create_two_sphere_scene,
        shading=ShadingMode.DIFFUSE,
        description="grey diffuse sphere resting on the ground",
    ),
    "materials": ScenePreset(
        build=create_material_scene,
        shading=ShadingMode.MATERIAL,
        description="diffuse, glass, and metal spheres",
    ),
}
