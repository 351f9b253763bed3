"""Unit tests for the ray module.

Tests cover:
- Ray dataclass and ray_at function
- Vector utility functions (length, unit_vector, dot, cross, near_zero)
- Reflection, refraction and Schlick reflectance
- Python-side vector helpers
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestRayBasics:
    """Tests for Ray dataclass and ray_at."""

    def test_ray_at_origin(self):
        """Test ray_at returns the origin when t=0."""
        from src.tracer.core.ray import Ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 0.0)

        test_kernel()
        assert tuple(result[None]) == (1.0, 2.0, 3.0)

    def test_ray_at_is_exact(self):
        """Test ray_at equals origin + t * direction exactly."""
        from src.tracer.core.ray import make_ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.25, -1.5, 2.0), vec3(0.1, 0.7, -0.3))
            result[None] = ray_at(ray, 2.5)

        test_kernel()
        r = result[None]
        assert r[0] == 0.25 + 2.5 * 0.1
        assert r[1] == -1.5 + 2.5 * 0.7
        assert r[2] == 2.0 + 2.5 * -0.3

    def test_ray_at_negative_t(self):
        """Test ray_at accepts negative t (behind the origin)."""
        from src.tracer.core.ray import Ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(1.0, 0.0, 0.0))
            result[None] = ray_at(ray, -2.0)

        test_kernel()
        assert tuple(result[None]) == (-2.0, 0.0, 0.0)


class TestVectorUtilities:
    """Tests for vector algebra functions."""

    @pytest.mark.parametrize(
        "v",
        [(3.0, 4.0, 0.0), (1e-3, -2e-3, 5e-4), (1e6, 1.0, -1e6), (0.0, 0.0, -7.0)],
    )
    def test_unit_vector_has_unit_length(self, v):
        """Test length(unit_vector(v)) is 1 for non-zero v."""
        from src.tracer.core.ray import length, unit_vector, vec3

        result = ti.field(dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel(x: ti.f64, y: ti.f64, z: ti.f64):
            result[None] = length(unit_vector(vec3(x, y, z)))

        test_kernel(*v)
        assert abs(result[None] - 1.0) < 1e-9

    def test_length_squared_and_length(self):
        """Test length of a 3-4-5 vector."""
        from src.tracer.core.ray import length, length_squared, vec3

        result_sq = ti.field(dtype=ti.f64, shape=())
        result_len = ti.field(dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            v = vec3(3.0, 4.0, 0.0)
            result_sq[None] = length_squared(v)
            result_len[None] = length(v)

        test_kernel()
        assert result_sq[None] == 25.0
        assert result_len[None] == 5.0

    def test_dot_and_cross(self):
        """Test dot and cross of the x and y axes."""
        from src.tracer.core.ray import cross, dot, vec3

        result_dot = ti.field(dtype=ti.f64, shape=())
        result_cross = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            x = vec3(1.0, 0.0, 0.0)
            y = vec3(0.0, 1.0, 0.0)
            result_dot[None] = dot(x, y)
            result_cross[None] = cross(x, y)

        test_kernel()
        assert result_dot[None] == 0.0
        assert tuple(result_cross[None]) == (0.0, 0.0, 1.0)

    def test_near_zero(self):
        """Test near_zero only accepts vectors with every component tiny."""
        from src.tracer.core.ray import near_zero, vec3

        results = ti.field(dtype=ti.i32, shape=3)

        @ti.kernel
        def test_kernel():
            results[0] = near_zero(vec3(1e-9, -1e-9, 0.0))
            results[1] = near_zero(vec3(1e-9, 1e-7, 0.0))
            results[2] = near_zero(vec3(0.0, 0.0, 0.0))

        test_kernel()
        assert results[0] == 1
        assert results[1] == 0
        assert results[2] == 1


class TestReflectRefract:
    """Tests for reflect, refract and reflectance."""

    def test_reflect_about_normal(self):
        """Test reflect flips the normal component."""
        from src.tracer.core.ray import reflect, vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        assert tuple(result[None]) == (1.0, 1.0, 0.0)

    def test_refract_head_on_keeps_direction(self):
        """Test a ray along the normal passes straight through."""
        from src.tracer.core.ray import refract, vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = refract(vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0), 1.0 / 1.5)

        test_kernel()
        r = result[None]
        assert abs(r[0]) < 1e-12
        assert abs(r[1]) < 1e-12
        assert abs(r[2] + 1.0) < 1e-12

    def test_refract_obeys_snell(self):
        """Test sin(theta_t) = ratio * sin(theta_i) for an oblique ray."""
        from src.tracer.core.ray import refract, vec3

        result = ti.Vector.field(3, dtype=ti.f64, shape=())
        ratio = 1.0 / 1.5
        theta = math.radians(30.0)

        @ti.kernel
        def test_kernel(sx: ti.f64, cz: ti.f64, eta: ti.f64):
            result[None] = refract(vec3(sx, 0.0, -cz), vec3(0.0, 0.0, 1.0), eta)

        test_kernel(math.sin(theta), math.cos(theta), ratio)
        r = np.array(result[None])
        assert abs(np.linalg.norm(r) - 1.0) < 1e-9
        assert abs(r[0] - ratio * math.sin(theta)) < 1e-9
        assert r[2] < 0.0

    def test_reflectance_at_normal_incidence(self):
        """Test Schlick reflectance at cos=1 is r0 = ((1-n)/(1+n))^2."""
        from src.tracer.core.ray import reflectance

        result = ti.field(dtype=ti.f64, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = reflectance(1.0, 1.5)
            result[1] = reflectance(0.0, 1.5)

        test_kernel()
        assert abs(result[0] - 0.04) < 1e-12
        assert abs(result[1] - 1.0) < 1e-12


class TestPythonHelpers:
    """Tests for the NumPy-side helpers."""

    def test_to_vec3_array(self):
        """Test conversion of a valid tuple."""
        from src.tracer.core.ray import to_vec3_array

        array = to_vec3_array((1, 2.5, -3))
        assert array.dtype == np.float64
        assert array.tolist() == [1.0, 2.5, -3.0]

    @pytest.mark.parametrize(
        "values",
        [(1.0, 2.0), (1.0, 2.0, 3.0, 4.0), (1.0, float("nan"), 0.0), ("a", "b", "c")],
    )
    def test_to_vec3_array_rejects_bad_input(self, values):
        """Test malformed vectors raise ConfigurationError."""
        from src.tracer.core.ray import to_vec3_array
        from src.tracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            to_vec3_array(values, "center")

    def test_unit_vector_np(self):
        """Test NumPy normalization."""
        from src.tracer.core.ray import unit_vector_np

        result = unit_vector_np(np.array([0.0, 3.0, 4.0]))
        assert np.allclose(result, [0.0, 0.6, 0.8])

    def test_unit_vector_np_zero_raises(self):
        """Test normalizing a zero vector raises DegenerateVectorError."""
        from src.tracer.core.ray import unit_vector_np
        from src.tracer.errors import DegenerateVectorError

        with pytest.raises(DegenerateVectorError):
            unit_vector_np(np.zeros(3))
