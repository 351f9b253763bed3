"""Unit tests for sphere intersection.

Tests cover:
- Ray hitting sphere from outside (front face)
- Ray missing sphere
- Ray starting inside sphere (back face)
- Negative radius (hollow shell)
- Closed [t_min, t_max] interval
"""

import taichi as ti


def _hit(origin, direction, center, radius, t_min=0.001, t_max=1e30):
    """Intersect one ray with one sphere and return the record as a dict."""
    from src.tracer.core.ray import Ray, vec3
    from src.tracer.geometry.sphere import Sphere, hit_sphere

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f64, shape=())
    point = ti.Vector.field(3, dtype=ti.f64, shape=())
    normal = ti.Vector.field(3, dtype=ti.f64, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())
    material_id = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(
        ox: ti.f64, oy: ti.f64, oz: ti.f64,
        dx: ti.f64, dy: ti.f64, dz: ti.f64,
        cx: ti.f64, cy: ti.f64, cz: ti.f64,
        r: ti.f64, lo: ti.f64, hi: ti.f64,
    ):
        ray = Ray(origin=vec3(ox, oy, oz), direction=vec3(dx, dy, dz))
        sphere = Sphere(center=vec3(cx, cy, cz), radius=r, material_id=7)
        record = hit_sphere(ray, sphere, lo, hi)
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal
        front_face[None] = record.front_face
        material_id[None] = record.material_id

    test_kernel(*origin, *direction, *center, radius, t_min, t_max)
    return {
        "hit": hit[None],
        "t": t_val[None],
        "point": tuple(point[None]),
        "normal": tuple(normal[None]),
        "front_face": front_face[None],
        "material_id": material_id[None],
    }


def _close(a, b, tol=1e-9):
    return all(abs(x - y) < tol for x, y in zip(a, b))


class TestSphereBasics:
    """Tests for Sphere dataclass and basic operations."""

    def test_make_sphere(self):
        """Test make_sphere convenience function."""
        from src.tracer.core.ray import vec3
        from src.tracer.geometry.sphere import make_sphere

        center_result = ti.Vector.field(3, dtype=ti.f64, shape=())
        radius_result = ti.field(dtype=ti.f64, shape=())
        id_result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            sphere = make_sphere(vec3(1.0, 2.0, 3.0), 0.5, 4)
            center_result[None] = sphere.center
            radius_result[None] = sphere.radius
            id_result[None] = sphere.material_id

        test_kernel()
        assert tuple(center_result[None]) == (1.0, 2.0, 3.0)
        assert radius_result[None] == 0.5
        assert id_result[None] == 4


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_hit_from_outside(self):
        """Test the canonical camera ray hits the near side of the sphere."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, -1.0), 0.5)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 0.5) < 1e-9
        assert _close(rec["point"], (0.0, 0.0, -0.5))
        assert _close(rec["normal"], (0.0, 0.0, 1.0))
        assert rec["front_face"] == 1
        assert rec["material_id"] == 7

    def test_unnormalized_direction(self):
        """Test t scales with the direction length."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, -2.0), (0.0, 0.0, -1.0), 0.5)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 0.25) < 1e-9
        assert _close(rec["point"], (0.0, 0.0, -0.5))

    def test_miss(self):
        """Test a ray passing far above the sphere misses."""
        rec = _hit((0.0, 10.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, -1.0), 0.5)
        assert rec["hit"] == 0
        assert rec["material_id"] == -1

    def test_sphere_behind_ray(self):
        """Test a sphere behind the origin is not hit."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, -3.0), 0.5)
        assert rec["hit"] == 0

    def test_hit_from_inside(self):
        """Test a ray from the center hits the far side as a back face."""
        rec = _hit((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 0.0), 2.0)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 2.0) < 1e-9
        assert rec["front_face"] == 0
        # Stored normal opposes the ray
        assert _close(rec["normal"], (-1.0, 0.0, 0.0))

    def test_negative_radius_flips_normal(self):
        """Test a negative radius gives the same hit with an inward normal."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, -1.0), -0.5)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 0.5) < 1e-9
        # Outward normal points inward, so the ray is on the back side
        assert rec["front_face"] == 0
        assert _close(rec["normal"], (0.0, 0.0, 1.0))

    def test_normal_is_unit_length(self):
        """Test the normal has unit length for an off-axis hit."""
        rec = _hit((0.3, 0.2, 2.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0), 1.0)
        assert rec["hit"] == 1
        n = rec["normal"]
        assert abs((n[0] ** 2 + n[1] ** 2 + n[2] ** 2) - 1.0) < 1e-9


class TestIntervalBounds:
    """Tests for the accepted t interval."""

    def test_interval_is_closed(self):
        """Test a root exactly at t_max is accepted."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, -1.0), 0.5, 0.001, 0.5)
        assert rec["hit"] == 1
        assert rec["t"] == 0.5

    def test_near_root_outside_interval_uses_far_root(self):
        """Test the far root is used when the near root is below t_min."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, -1.0), 0.5, 0.6, 10.0)
        assert rec["hit"] == 1
        assert abs(rec["t"] - 1.5) < 1e-9
        assert rec["front_face"] == 0

    def test_both_roots_outside_interval(self):
        """Test no hit when both roots lie beyond t_max."""
        rec = _hit((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, -1.0), 0.5, 0.001, 0.4)
        assert rec["hit"] == 0
