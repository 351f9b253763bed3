"""Unit tests for the thin-lens camera."""

import math

import numpy as np
import pytest


def _make_camera(**overrides):
    from src.tracer.camera.thin_lens import ThinLensCamera

    params = dict(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=2.0,
        aperture=0.0,
        focus_dist=1.0,
    )
    params.update(overrides)
    return ThinLensCamera(**params)


class TestCameraConfig:
    """Tests for ThinLensCamera validation and basis."""

    def test_basis_is_orthonormal(self):
        """Test u, v, w form a right-handed orthonormal basis."""
        camera = _make_camera(lookfrom=(13.0, 2.0, 3.0), lookat=(0.0, 0.0, 0.0))
        u, v, w = camera.basis()
        for axis in (u, v, w):
            assert abs(np.linalg.norm(axis) - 1.0) < 1e-12
        assert abs(np.dot(u, v)) < 1e-12
        assert abs(np.dot(u, w)) < 1e-12
        assert abs(np.dot(v, w)) < 1e-12
        np.testing.assert_allclose(np.cross(u, v), w, atol=1e-12)

    def test_basis_default_orientation(self):
        """Test looking down -z gives the standard axes."""
        u, v, w = _make_camera().basis()
        np.testing.assert_allclose(u, [1.0, 0.0, 0.0])
        np.testing.assert_allclose(v, [0.0, 1.0, 0.0])
        np.testing.assert_allclose(w, [0.0, 0.0, 1.0])

    @pytest.mark.parametrize(
        "overrides",
        [
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"vfov": float("nan")},
            {"aspect_ratio": 0.0},
            {"aperture": -0.1},
            {"focus_dist": 0.0},
            {"lookfrom": (0.0, 0.0)},
        ],
    )
    def test_invalid_parameters(self, overrides):
        """Test out-of-range parameters raise ConfigurationError."""
        from src.tracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            _make_camera(**overrides)

    def test_lookfrom_equals_lookat(self):
        """Test a zero view direction raises DegenerateVectorError."""
        from src.tracer.errors import DegenerateVectorError

        with pytest.raises(DegenerateVectorError):
            _make_camera(lookfrom=(1.0, 1.0, 1.0), lookat=(1.0, 1.0, 1.0))

    def test_vup_parallel_to_view(self):
        """Test vup along the view direction raises DegenerateVectorError."""
        from src.tracer.errors import DegenerateVectorError

        with pytest.raises(DegenerateVectorError):
            _make_camera(lookat=(0.0, -1.0, 0.0))

    def test_dict_round_trip(self):
        """Test to_dict and from_dict preserve every parameter."""
        from src.tracer.camera.thin_lens import ThinLensCamera

        camera = _make_camera(aperture=0.5, focus_dist=3.0)
        assert ThinLensCamera.from_dict(camera.to_dict()) == camera

    def test_from_dict_missing_key(self):
        """Test a missing required key raises ConfigurationError."""
        from src.tracer.camera.thin_lens import ThinLensCamera
        from src.tracer.errors import ConfigurationError

        data = _make_camera().to_dict()
        del data["vfov"]
        with pytest.raises(ConfigurationError):
            ThinLensCamera.from_dict(data)

    @pytest.mark.parametrize(
        "key, value",
        [("vfov", "wide"), ("aperture", None), ("lookfrom", 3.0), ("vup", ["a", "b", "c"])],
    )
    def test_from_dict_malformed_value(self, key, value):
        """Test a value of the wrong type raises ConfigurationError."""
        from src.tracer.camera.thin_lens import ThinLensCamera
        from src.tracer.errors import ConfigurationError

        data = _make_camera().to_dict()
        data[key] = value
        with pytest.raises(ConfigurationError):
            ThinLensCamera.from_dict(data)

    def test_from_dict_not_an_object(self):
        """Test a camera entry that is not a dictionary raises ConfigurationError."""
        from src.tracer.camera.thin_lens import ThinLensCamera
        from src.tracer.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            ThinLensCamera.from_dict([0.0, 0.0, 0.0])



class TestRayGeneration:
    """Tests for camera ray generation."""

    def test_pinhole_center_ray(self):
        """Test the center ray of a pinhole camera points at lookat."""
        from src.tracer.camera.thin_lens import sample_camera_ray, setup_camera

        setup_camera(_make_camera())
        origin, direction = sample_camera_ray(0.5, 0.5)
        np.testing.assert_allclose(origin, (0.0, 0.0, 0.0), atol=1e-12)
        np.testing.assert_allclose(direction, (0.0, 0.0, -1.0), atol=1e-12)

    def test_pinhole_corner_rays(self):
        """Test corner rays span the viewport given by vfov and aspect ratio."""
        from src.tracer.camera.thin_lens import sample_camera_ray, setup_camera

        setup_camera(_make_camera())
        # vfov 90 at distance 1 gives a viewport 2 high and 4 wide
        _, lower_left = sample_camera_ray(0.0, 0.0)
        _, upper_right = sample_camera_ray(1.0, 1.0)
        np.testing.assert_allclose(lower_left, (-2.0, -1.0, -1.0), atol=1e-12)
        np.testing.assert_allclose(upper_right, (2.0, 1.0, -1.0), atol=1e-12)

    def test_directions_not_normalized(self):
        """Test camera ray directions keep their viewport length."""
        from src.tracer.camera.thin_lens import sample_camera_ray, setup_camera

        setup_camera(_make_camera(focus_dist=2.0))
        _, direction = sample_camera_ray(0.5, 0.5)
        assert abs(np.linalg.norm(direction) - 2.0) < 1e-12

    def test_thin_lens_rays_converge_on_focus_plane(self):
        """Test every lens sample passes through the same focus-plane point."""
        from src.tracer.camera.thin_lens import get_camera_info, sample_camera_ray, setup_camera

        setup_camera(_make_camera(aperture=0.5, focus_dist=2.0))
        info = get_camera_info()
        assert info["lens_radius"] == 0.25

        targets = []
        origins = []
        for stream in range(32):
            origin, direction = sample_camera_ray(0.3, 0.7, stream)
            origins.append(origin)
            targets.append(np.add(origin, direction))

        origins = np.array(origins)
        # Origins lie on the lens disk in the z = 0 plane
        assert np.all(np.abs(origins[:, 2]) < 1e-12)
        assert np.linalg.norm(origins[:, :2], axis=1).max() < 0.25
        assert np.ptp(origins[:, 0]) > 0.0
        np.testing.assert_allclose(targets, np.tile(targets[0], (32, 1)), atol=1e-12)

    def test_camera_info(self):
        """Test get_camera_info reflects the loaded camera."""
        from src.tracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(lookfrom=(1.0, 2.0, 3.0), lookat=(1.0, 2.0, 2.0)))
        info = get_camera_info()
        assert info["origin"] == (1.0, 2.0, 3.0)
        np.testing.assert_allclose(info["horizontal"], (4.0, 0.0, 0.0), atol=1e-12)
        np.testing.assert_allclose(info["vertical"], (0.0, 2.0, 0.0), atol=1e-12)
        assert info["lens_radius"] == 0.0

    def test_vfov_controls_viewport_height(self):
        """Test viewport height is 2 tan(vfov / 2) times focus distance."""
        from src.tracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(vfov=60.0, aspect_ratio=1.0, focus_dist=3.0))
        info = get_camera_info()
        expected = 2.0 * math.tan(math.radians(30.0)) * 3.0
        assert abs(info["vertical"][1] - expected) < 1e-12
