"""Unit tests for the SceneManager.

Tests cover:
- Material registration (Lambertian, Metal, Dielectric)
- Material type tracking and lookup
- Sphere addition with materials and material sharing
- Convenience methods (add_*_sphere)
- Scene serialization (to_config, from_config, to_dict, from_dict)
- Scene clearing
- Scenes built side by side keeping their own materials
- Kernel-side material type dispatch
"""

import pytest
import taichi as ti


@pytest.fixture
def fresh_scene():
    """Create a fresh SceneManager for each test."""
    from src.tracer.scene.manager import SceneManager

    scene = SceneManager()
    yield scene
    scene.clear()


class TestMaterialRegistration:
    """Tests for material registration."""

    def test_add_lambertian_material(self, fresh_scene):
        """Test adding a Lambertian material."""
        mat_id = fresh_scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
        assert mat_id == 0
        assert fresh_scene.get_material_count() == 1

    def test_add_metal_material(self, fresh_scene):
        """Test adding a metal material."""
        mat_id = fresh_scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        assert mat_id == 0
        assert fresh_scene.get_material_count() == 1

    def test_add_dielectric_material(self, fresh_scene):
        """Test adding a dielectric material."""
        mat_id = fresh_scene.add_dielectric_material(refraction_index=1.5)
        assert mat_id == 0
        assert fresh_scene.get_material_count() == 1

    def test_add_multiple_materials(self, fresh_scene):
        """Test that IDs are shared across material types."""
        id0 = fresh_scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
        id1 = fresh_scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.0)
        id2 = fresh_scene.add_dielectric_material(refraction_index=1.5)
        id3 = fresh_scene.add_lambertian_material(albedo=(0.1, 0.8, 0.1))

        assert [id0, id1, id2, id3] == [0, 1, 2, 3]
        assert fresh_scene.get_material_count() == 4
        # Second Lambertian is index 1 in its own registry
        assert fresh_scene.get_material_info(3).type_index == 1

    def test_material_validation_albedo(self, fresh_scene):
        """Test that invalid albedo raises ValueError."""
        with pytest.raises(ValueError):
            fresh_scene.add_lambertian_material(albedo=(1.5, 0.0, 0.0))

        with pytest.raises(ValueError):
            fresh_scene.add_metal_material(albedo=(-0.1, 0.5, 0.5))

        assert fresh_scene.get_material_count() == 0

    def test_material_validation_fuzz(self, fresh_scene):
        """Test that fuzz outside [0, 1] raises ValueError."""
        with pytest.raises(ValueError):
            fresh_scene.add_metal_material(albedo=(0.8, 0.8, 0.8), fuzz=1.5)

        with pytest.raises(ValueError):
            fresh_scene.add_metal_material(albedo=(0.8, 0.8, 0.8), fuzz=-0.1)

    def test_material_validation_refraction_index(self, fresh_scene):
        """Test that a non-positive refractive index raises ValueError."""
        with pytest.raises(ValueError):
            fresh_scene.add_dielectric_material(refraction_index=0.0)

    def test_type_capacity(self, fresh_scene):
        """Test that each material type is limited to its registry size."""
        from src.tracer.materials.metal import MAX_METAL_MATERIALS

        for _ in range(MAX_METAL_MATERIALS):
            fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(RuntimeError, match="Maximum number of metal materials"):
            fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5))
        # Other types still have room
        assert fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5)) == MAX_METAL_MATERIALS

    def test_bubble_index_below_one_allowed(self, fresh_scene):
        """Test that indices below 1 are accepted for air pockets."""
        mat_id = fresh_scene.add_dielectric_material(refraction_index=1.0 / 1.5)
        assert mat_id == 0


class TestMaterialTypeTracking:
    """Tests for material type tracking."""

    def test_get_material_type_python(self, fresh_scene):
        """Test getting material type from Python side."""
        from src.tracer.scene.manager import MaterialType

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_metal_material(albedo=(0.8, 0.8, 0.8))
        fresh_scene.add_dielectric_material(refraction_index=1.5)

        assert fresh_scene.get_material_type_python(0) == MaterialType.LAMBERTIAN
        assert fresh_scene.get_material_type_python(1) == MaterialType.METAL
        assert fresh_scene.get_material_type_python(2) == MaterialType.DIELECTRIC
        assert fresh_scene.get_material_type_python(99) is None

    def test_get_material_info(self, fresh_scene):
        """Test getting full material info."""
        from src.tracer.scene.manager import MaterialType

        fresh_scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)

        info = fresh_scene.get_material_info(0)
        assert info is not None
        assert info.material_id == 0
        assert info.material_type == MaterialType.METAL
        assert info.type_index == 0
        assert info.params["albedo"] == (0.8, 0.6, 0.2)
        assert info.params["fuzz"] == 0.3
        assert fresh_scene.get_material_info(-1) is None

    def test_get_material_type_kernel(self, fresh_scene):
        """Test getting material type and index from a kernel."""
        from src.tracer.scene.manager import (
            MaterialType,
            get_material_type,
            get_material_type_index,
        )

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_metal_material(albedo=(0.8, 0.8, 0.8))
        fresh_scene.add_dielectric_material(refraction_index=1.5)
        fresh_scene.add_metal_material(albedo=(0.2, 0.2, 0.2))
        fresh_scene.upload()

        types = ti.field(dtype=ti.i32, shape=5)
        indices = ti.field(dtype=ti.i32, shape=5)

        @ti.kernel
        def test_kernel():
            for k in range(4):
                types[k] = get_material_type(k)
                indices[k] = get_material_type_index(k)
            types[4] = get_material_type(-1)
            indices[4] = get_material_type_index(-1)

        test_kernel()
        assert [types[k] for k in range(5)] == [
            int(MaterialType.LAMBERTIAN),
            int(MaterialType.METAL),
            int(MaterialType.DIELECTRIC),
            int(MaterialType.METAL),
            -1,
        ]
        assert [indices[k] for k in range(5)] == [0, 0, 0, 1, -1]


class TestSpheres:
    """Tests for adding spheres to the world."""

    def test_add_sphere(self, fresh_scene):
        """Test adding spheres with and without materials."""
        from src.tracer.geometry.hittable import NO_MATERIAL

        mat = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        assert fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, mat) == 0
        assert fresh_scene.add_sphere((0.0, -100.5, -1.0), 100.0) == 1

        spheres = list(fresh_scene.primitives())
        assert fresh_scene.get_sphere_count() == 2
        assert spheres[0].material_id == mat
        assert spheres[1].material_id == NO_MATERIAL

    def test_invalid_material_id(self, fresh_scene):
        """Test that unknown material IDs are rejected."""
        with pytest.raises(ValueError, match="Invalid material_id"):
            fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, material_id=3)
        assert fresh_scene.get_sphere_count() == 0

    def test_shared_material(self, fresh_scene):
        """Test that many spheres can reference one material."""
        glass = fresh_scene.add_dielectric_material(refraction_index=1.5)
        for k in range(3):
            fresh_scene.add_sphere((float(k), 0.0, -1.0), 0.25, glass)

        assert fresh_scene.get_material_count() == 1
        assert {s.material_id for s in fresh_scene.primitives()} == {glass}

    def test_convenience_methods(self, fresh_scene):
        """Test add_*_sphere create a material and a sphere together."""
        from src.tracer.scene.manager import MaterialType

        s0, m0 = fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.1, 0.2, 0.5))
        s1, m1 = fresh_scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), 1.0)
        s2, m2 = fresh_scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.5, 1.5)

        assert (s0, s1, s2) == (0, 1, 2)
        assert (m0, m1, m2) == (0, 1, 2)
        assert fresh_scene.get_material_type_python(m1) == MaterialType.METAL

    def test_add_hittable_list(self, fresh_scene):
        """Test adding a nested list of spheres."""
        from src.tracer.geometry.hittable import HittableList, SphereInfo

        group = HittableList(
            [
                SphereInfo(center=(0.0, 0.0, -1.0), radius=0.5),
                SphereInfo(center=(0.0, 0.0, -2.0), radius=0.5),
            ]
        )
        fresh_scene.add(group)
        assert fresh_scene.get_sphere_count() == 2

    def test_cannot_add_itself(self, fresh_scene):
        """Test that a scene cannot be added to its own world."""
        with pytest.raises(ValueError, match="cannot contain itself"):
            fresh_scene.add(fresh_scene)

    def test_hit_uses_materials(self, fresh_scene):
        """Test the nearest-hit query through the scene."""
        red = fresh_scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, red)

        result = fresh_scene.hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert result is not None
        assert result.material_id == red
        assert result.t == pytest.approx(0.5, abs=1e-5)


class TestSerialization:
    """Tests for scene configuration round trips."""

    def _build(self, scene):
        ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
        gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=1.0)
        glass = scene.add_dielectric_material(refraction_index=1.5)
        scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
        scene.add_sphere((1.0, 0.0, -1.0), 0.5, gold)
        scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
        scene.add_sphere((0.0, 0.0, -1.0), 0.5)

    def test_to_config(self, fresh_scene):
        """Test exporting materials and spheres."""
        self._build(fresh_scene)
        config = fresh_scene.to_config()

        assert [m["type"] for m in config.materials] == ["lambertian", "metal", "dielectric"]
        assert config.materials[1] == {"type": "metal", "albedo": [0.8, 0.6, 0.2], "fuzz": 1.0}
        assert config.materials[2]["refraction_index"] == 1.5
        assert len(config.spheres) == 4
        assert config.spheres[3]["material_id"] == -1

    def test_dict_round_trip(self, fresh_scene):
        """Test that from_dict(to_dict()) reproduces the scene."""
        from src.tracer.scene.manager import SceneManager

        self._build(fresh_scene)
        data = fresh_scene.to_dict()

        other = SceneManager()
        other.from_dict(data)
        assert other.to_dict() == data
        assert other.get_material_count() == 3
        assert other.get_sphere_count() == 4

    def test_from_config_unknown_type(self, fresh_scene):
        """Test that unknown material types are rejected."""
        from src.tracer.scene.manager import SceneConfig

        with pytest.raises(ValueError, match="Unknown material type"):
            fresh_scene.from_config(SceneConfig(materials=[{"type": "plasma"}]))

    def test_clear(self, fresh_scene):
        """Test clearing the whole scene."""
        from src.tracer.scene.intersection import get_sphere_count

        self._build(fresh_scene)
        fresh_scene.upload()
        fresh_scene.clear()

        assert fresh_scene.get_material_count() == 0
        assert fresh_scene.get_sphere_count() == 0
        # Storage keeps the old scene until the next upload
        assert get_sphere_count() == 4
        fresh_scene.upload()
        assert get_sphere_count() == 0
        assert repr(fresh_scene) == "SceneManager(materials=0, spheres=0)"


class TestSceneIsolation:
    """Tests for several scenes alive at the same time."""

    def _black_ball(self):
        from src.tracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.0, 0.0, 0.0))
        return scene

    def test_scene_built_later_keeps_materials(self):
        """Test that building a second scene leaves the first one's materials."""
        from src.tracer.core.shading import trace_ray
        from src.tracer.scene.manager import SceneManager

        black = self._black_ball()
        assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), depth=5, world=black) == (
            0.0, 0.0, 0.0,
        )

        mirror = SceneManager()
        mirror.add_metal_sphere((0.0, 0.0, -1.0), 0.5, (1.0, 1.0, 1.0), fuzz=0.0)
        mirror.upload()

        assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), depth=5, world=black) == (
            0.0, 0.0, 0.0,
        )

    def test_preset_built_later_keeps_materials(self):
        """Test rendering a scene after a preset scene is constructed."""
        from src.tracer.core.shading import trace_ray
        from src.tracer.scene.presets import create_material_scene

        black = self._black_ball()
        create_material_scene()
        assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), depth=5, world=black) == (
            0.0, 0.0, 0.0,
        )

    def test_upload_restores_material_table(self):
        """Test that uploading switches the kernel-side material table."""
        from src.tracer.scene.manager import MaterialType, SceneManager, get_material_type

        first = SceneManager()
        first.add_lambertian_material((0.5, 0.5, 0.5))
        second = SceneManager()
        second.add_metal_material((0.5, 0.5, 0.5))
        second.add_dielectric_material(1.5)

        result = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = get_material_type(0)
            result[1] = get_material_type(1)

        second.upload()
        test_kernel()
        assert (result[0], result[1]) == (int(MaterialType.METAL), int(MaterialType.DIELECTRIC))

        first.upload()
        test_kernel()
        assert (result[0], result[1]) == (int(MaterialType.LAMBERTIAN), -1)

    def test_shared_material_shades_alike(self):
        """Test that two spheres sharing one material shade the same way."""
        from src.tracer.core.shading import trace_ray
        from src.tracer.scene.manager import SceneManager

        scene = SceneManager()
        mirror = scene.add_metal_material((0.5, 0.5, 0.5), fuzz=0.0)
        scene.add_sphere((-1.0, 0.0, -1.0), 0.5, mirror)
        scene.add_sphere((1.0, 0.0, -1.0), 0.5, mirror)

        left = trace_ray((0.0, 0.0, 0.0), (-1.0, 0.0, -1.0), depth=5, world=scene)
        right = trace_ray((0.0, 0.0, 0.0), (1.0, 0.0, -1.0), depth=5, world=scene)

        # Both rays bounce straight back to the horizon of the sky
        assert left == pytest.approx((0.375, 0.425, 0.5), abs=1e-4)
        assert right == pytest.approx(left, abs=1e-5)

    def test_clear_leaves_other_scene(self):
        """Test that clearing one scene does not touch another."""
        from src.tracer.scene.manager import SceneManager

        kept = self._black_ball()
        SceneManager().clear()

        assert kept.get_material_count() == 1
        assert kept.get_material_info(0).params["albedo"] == (0.0, 0.0, 0.0)
