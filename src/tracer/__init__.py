"""CPU ray tracer built on Taichi.

This package renders scenes of spheres as seen through a simple camera,
with support for:
- Nearest-hit ray/sphere intersection over nested hittable lists
- Material models (Lambertian, metal, dielectric) shared by ID
- Normal, grey diffuse, and material shading modes
- Antialiasing by averaging jittered samples per pixel
- Plain PPM and PNG output

Subpackages:
    core: Rays, vector utilities, shading, and the scan loop
    geometry: Sphere intersection and the hittable scene description
    materials: Surface scattering models
    scene: Scene storage, material registry, and test scenes
    camera: Camera configuration and primary ray generation
    preview: Color encoding and image export
"""

__version__ = "0.1.0"
