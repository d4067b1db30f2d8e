"""Unit tests for the metal material module.

Tests cover:
- Perfect mirror reflection at various angles
- Fuzzy reflection bounded by the fuzz radius
- Absorption of rays perturbed below the surface
- Material registry operations and validation
"""

import math

import pytest
import taichi as ti

N_SAMPLES = 2000


def _scatter(albedo, fuzz, incident, normal):
    """Run scatter_metal once and return (direction, attenuation, did_scatter)."""
    from src.tracer.materials.metal import scatter_metal, vec3

    direction = ti.Vector.field(3, dtype=ti.f32, shape=())
    attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())
    did_scatter = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(
        ar: ti.f32, ag: ti.f32, ab: ti.f32, fuzz: ti.f32,
        ix: ti.f32, iy: ti.f32, iz: ti.f32,
        nx: ti.f32, ny: ti.f32, nz: ti.f32,
    ):
        d, a, s = scatter_metal(
            vec3(ar, ag, ab), fuzz, vec3(ix, iy, iz).normalized(), vec3(nx, ny, nz)
        )
        direction[None] = d
        attenuation[None] = a
        did_scatter[None] = s

    test_kernel(*albedo, fuzz, *incident, *normal)
    d = direction[None]
    a = attenuation[None]
    return (d[0], d[1], d[2]), (a[0], a[1], a[2]), did_scatter[None]


class TestMetalReflection:
    """Tests for mirror and fuzzy reflection."""

    def test_perfect_reflection_normal_incidence(self):
        """Test that a head-on ray bounces straight back."""
        direction, _, did_scatter = _scatter(
            (0.8, 0.8, 0.8), 0.0, (0.0, -1.0, 0.0), (0.0, 1.0, 0.0)
        )
        assert did_scatter == 1
        assert direction == pytest.approx((0.0, 1.0, 0.0), abs=1e-6)

    def test_perfect_reflection_45_degrees(self):
        """Test mirror reflection of a 45 degree ray."""
        direction, _, did_scatter = _scatter(
            (0.8, 0.8, 0.8), 0.0, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0)
        )
        s = 1.0 / math.sqrt(2.0)
        assert did_scatter == 1
        assert direction == pytest.approx((s, s, 0.0), abs=1e-6)

    def test_attenuation_equals_albedo(self):
        """Test that the attenuation is the albedo."""
        _, attenuation, _ = _scatter(
            (0.8, 0.6, 0.2), 0.0, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0)
        )
        assert attenuation == pytest.approx((0.8, 0.6, 0.2), abs=1e-6)

    def test_fuzzy_reflection_bounded_by_fuzz(self):
        """Test that fuzzy directions stay within the fuzz cone."""
        from src.tracer.materials.metal import scatter_metal, vec3

        fuzz = 0.3
        angles = ti.field(dtype=ti.f32, shape=N_SAMPLES)
        scattered = ti.field(dtype=ti.i32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            incident = vec3(0.0, -1.0, 0.0)
            for i in range(N_SAMPLES):
                d, _, s = scatter_metal(vec3(1.0, 1.0, 1.0), fuzz, incident, normal)
                angles[i] = d.dot(normal)
                scattered[i] = s

        test_kernel()
        cosines = angles.to_numpy()
        # Unit mirror direction plus a vector of length < fuzz: the angle is
        # at most asin(fuzz) from the mirror direction
        assert (scattered.to_numpy() == 1).all()
        assert (cosines >= math.cos(math.asin(fuzz)) - 1e-5).all()
        assert cosines.min() < 0.999

    def test_scattered_direction_is_normalized(self):
        """Test that scattered directions are unit length."""
        direction, _, _ = _scatter(
            (0.8, 0.8, 0.8), 0.5, (1.0, -2.0, 0.5), (0.0, 1.0, 0.0)
        )
        assert math.sqrt(sum(c * c for c in direction)) == pytest.approx(1.0, abs=1e-5)

    def test_fuzzy_grazing_angle_may_absorb(self):
        """Test that fuzz at grazing angles sends some rays below the surface."""
        from src.tracer.materials.metal import scatter_metal, vec3

        scattered = ti.field(dtype=ti.i32, shape=N_SAMPLES)
        directions = ti.Vector.field(3, dtype=ti.f32, shape=N_SAMPLES)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            incident = vec3(1.0, -0.05, 0.0).normalized()
            for i in range(N_SAMPLES):
                d, _, s = scatter_metal(vec3(1.0, 1.0, 1.0), 1.0, incident, normal)
                scattered[i] = s
                directions[i] = d

        test_kernel()
        flags = scattered.to_numpy()
        dirs = directions.to_numpy()
        assert (flags == 0).any()
        assert (flags == 1).any()
        # Absorbed rays report a zero direction
        assert (dirs[flags == 0] == 0.0).all()


class TestMetalRegistry:
    """Tests for the metal material registry."""

    def test_add_and_get_material(self):
        """Test adding a material and reading it back in a kernel."""
        from src.tracer.materials.metal import add_metal_material, get_metal_albedo, get_metal_fuzz

        idx = add_metal_material((0.8, 0.6, 0.2), fuzz=0.3)
        albedo = ti.Vector.field(3, dtype=ti.f32, shape=())
        fuzz = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(mat_idx: ti.i32):
            albedo[None] = get_metal_albedo(mat_idx)
            fuzz[None] = get_metal_fuzz(mat_idx)

        test_kernel(idx)
        a = albedo[None]
        assert (a[0], a[1], a[2]) == pytest.approx((0.8, 0.6, 0.2), abs=1e-6)
        assert fuzz[None] == pytest.approx(0.3, abs=1e-6)

    def test_default_fuzz_is_zero(self):
        """Test that the default metal is a perfect mirror."""
        from src.tracer.materials.metal import add_metal_material, get_metal_fuzz

        idx = add_metal_material((0.5, 0.5, 0.5))
        fuzz = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(mat_idx: ti.i32):
            fuzz[None] = get_metal_fuzz(mat_idx)

        test_kernel(idx)
        assert fuzz[None] == 0.0

    def test_material_count(self):
        """Test counting and clearing metal materials."""
        from src.tracer.materials.metal import (
            add_metal_material,
            clear_metal_materials,
            get_metal_material_count,
        )

        add_metal_material((0.5, 0.5, 0.5))
        add_metal_material((0.5, 0.5, 0.5), 1.0)
        assert get_metal_material_count() == 2
        clear_metal_materials()
        assert get_metal_material_count() == 0

    def test_scatter_by_id(self):
        """Test scattering off a registered metal."""
        from src.tracer.materials.metal import add_metal_material, scatter_metal_by_id, vec3

        idx = add_metal_material((0.7, 0.7, 0.7), fuzz=0.0)
        direction = ti.Vector.field(3, dtype=ti.f32, shape=())
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(mat_idx: ti.i32):
            d, a, _ = scatter_metal_by_id(mat_idx, vec3(0.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))
            direction[None] = d
            attenuation[None] = a

        test_kernel(idx)
        d = direction[None]
        a = attenuation[None]
        assert (d[0], d[1], d[2]) == pytest.approx((0.0, 1.0, 0.0), abs=1e-6)
        assert (a[0], a[1], a[2]) == pytest.approx((0.7, 0.7, 0.7), abs=1e-6)

    @pytest.mark.parametrize("fuzz", [-0.1, 1.5])
    def test_fuzz_validation(self, fuzz):
        """Test that fuzz outside [0, 1] raises ValueError."""
        from src.tracer.materials.metal import add_metal_material

        with pytest.raises(ValueError, match="Fuzz"):
            add_metal_material((0.5, 0.5, 0.5), fuzz)

    @pytest.mark.parametrize("albedo", [(-0.1, 0.5, 0.5), (0.5, 0.5, 1.2)])
    def test_albedo_validation(self, albedo):
        """Test that invalid albedos raise ValueError."""
        from src.tracer.materials.metal import add_metal_material

        with pytest.raises(ValueError, match="Albedo"):
            add_metal_material(albedo)

    def test_fuzz_boundary_values_valid(self):
        """Test that fuzz 0 and 1 are accepted."""
        from src.tracer.materials.metal import add_metal_material

        assert add_metal_material((0.5, 0.5, 0.5), 0.0) == 0
        assert add_metal_material((0.5, 0.5, 0.5), 1.0) == 1
