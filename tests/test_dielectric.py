"""Unit tests for the dielectric material."""

import math

import numpy as np
import pytest
import taichi as ti

N_SAMPLES = 2000


def _scatter_dielectric(direction, normal, front_face, ior=1.5, count=N_SAMPLES):
    from src.tracer.core.ray import Ray, vec3
    from src.tracer.geometry.hit_record import HitRecord
    from src.tracer.materials.dielectric import scatter_dielectric

    directions = ti.Vector.field(3, dtype=ti.f64, shape=count)
    attenuations = ti.Vector.field(3, dtype=ti.f64, shape=count)
    flags = ti.field(dtype=ti.i32, shape=count)

    @ti.kernel
    def test_kernel(
        dx: ti.f64, dy: ti.f64, dz: ti.f64,
        nx: ti.f64, ny: ti.f64, nz: ti.f64,
        ff: ti.i32, eta: ti.f64,
    ):
        for k in range(count):
            ray_in = Ray(origin=vec3(0.0, 0.0, 1.0), direction=vec3(dx, dy, dz))
            rec = HitRecord(
                hit=1,
                t=1.0,
                point=vec3(0.0, 0.0, 0.0),
                normal=vec3(nx, ny, nz),
                front_face=ff,
                material_id=0,
            )
            scattered, attenuation, did_scatter = scatter_dielectric(eta, ray_in, rec, k)
            directions[k] = scattered.direction
            attenuations[k] = attenuation
            flags[k] = did_scatter

    test_kernel(*direction, *normal, front_face, ior)
    return directions.to_numpy(), attenuations.to_numpy(), flags.to_numpy()


class TestRefractionHelpers:
    """Tests for refraction_ratio and cannot_refract."""

    def test_refraction_ratio(self):
        """Test entering uses 1/ior and leaving uses ior."""
        from src.tracer.materials.dielectric import refraction_ratio

        result = ti.field(dtype=ti.f64, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = refraction_ratio(1.5, 1)
            result[1] = refraction_ratio(1.5, 0)

        test_kernel()
        assert abs(result[0] - 1.0 / 1.5) < 1e-12
        assert result[1] == 1.5

    def test_cannot_refract(self):
        """Test total internal reflection past the critical angle."""
        from src.tracer.core.ray import vec3
        from src.tracer.materials.dielectric import cannot_refract

        result = ti.field(dtype=ti.i32, shape=2)
        # Critical angle for 1.5 -> 1.0 is about 41.8 degrees
        steep = math.radians(30.0)
        shallow = math.radians(60.0)

        @ti.kernel
        def test_kernel(s1: ti.f64, c1: ti.f64, s2: ti.f64, c2: ti.f64):
            n = vec3(0.0, 0.0, 1.0)
            result[0] = cannot_refract(1.5, vec3(s1, 0.0, -c1), n)
            result[1] = cannot_refract(1.5, vec3(s2, 0.0, -c2), n)

        test_kernel(math.sin(steep), math.cos(steep), math.sin(shallow), math.cos(shallow))
        assert result[0] == 0
        assert result[1] == 1


class TestDielectricScatter:
    """Tests for scatter_dielectric."""

    def test_never_absorbs(self):
        """Test attenuation is white and every ray scatters."""
        _, attenuations, flags = _scatter_dielectric((0.3, 0.0, -1.0), (0.0, 0.0, 1.0), 1)
        assert np.all(flags == 1)
        assert np.all(attenuations == 1.0)

    def test_head_on_refraction_is_colinear(self):
        """Test a head-on ray either passes straight through or reflects back."""
        directions, _, _ = _scatter_dielectric((0.0, 0.0, -1.0), (0.0, 0.0, 1.0), 1)
        through = directions[:, 2] < 0.0
        np.testing.assert_allclose(directions[through], np.tile([0, 0, -1], (through.sum(), 1)), atol=1e-12)
        np.testing.assert_allclose(directions[~through], np.tile([0, 0, 1], ((~through).sum(), 1)), atol=1e-12)
        # Schlick gives about 4% reflection at normal incidence for glass
        assert abs((~through).mean() - 0.04) < 0.02

    def test_total_internal_reflection(self):
        """Test rays inside glass past the critical angle always reflect."""
        theta = math.radians(60.0)
        direction = (math.sin(theta), 0.0, -math.cos(theta))
        # Leaving the glass: back face, normal opposing the ray
        directions, _, _ = _scatter_dielectric(direction, (0.0, 0.0, 1.0), 0)
        expected = np.array([math.sin(theta), 0.0, math.cos(theta)])
        np.testing.assert_allclose(directions, np.tile(expected, (N_SAMPLES, 1)), atol=1e-12)

    def test_ior_one_passes_straight_through(self):
        """Test a dielectric matching its surroundings never bends the ray."""
        theta = math.radians(35.0)
        direction = (math.sin(theta), 0.0, -math.cos(theta))
        directions, _, _ = _scatter_dielectric(direction, (0.0, 0.0, 1.0), 1, ior=1.0)
        through = directions[:, 2] < 0.0
        # Schlick still reflects a tiny fraction at oblique angles
        assert through.mean() > 0.99
        np.testing.assert_allclose(
            directions[through], np.tile(direction, (through.sum(), 1)), atol=1e-9
        )


class TestDielectricRegistry:
    """Tests for the dielectric material registry."""

    def test_add_and_read_back(self):
        """Test ior values are stored per material."""
        from src.tracer.materials.dielectric import (
            add_dielectric_material,
            get_dielectric_ior,
            get_dielectric_material_count,
        )

        add_dielectric_material()
        idx = add_dielectric_material(2.4)
        assert get_dielectric_material_count() == 2

        result = ti.field(dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel(i: ti.i32):
            result[None] = get_dielectric_ior(i)

        test_kernel(idx)
        assert result[None] == 2.4

    def test_ior_below_one_allowed(self):
        """Test an ior between 0 and 1 is accepted."""
        from src.tracer.materials.dielectric import validate_ior

        assert validate_ior(0.75) == 0.75

    @pytest.mark.parametrize("ior", [0.0, -1.5, float("nan"), float("inf")])
    def test_invalid_ior(self, ior):
        """Test non-positive or non-finite ior raises ConfigurationError."""
        from src.tracer.errors import ConfigurationError
        from src.tracer.materials.dielectric import add_dielectric_material

        with pytest.raises(ConfigurationError):
            add_dielectric_material(ior)
