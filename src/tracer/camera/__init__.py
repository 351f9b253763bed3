"""Camera module for view and ray generation.

Components:
    thin_lens: Look-at camera with vertical field of view and a thin lens
        for depth of field (a pinhole camera when the aperture is 0)

Ray generation uses viewport coordinates:
    s in [0, 1]: left to right across the image
    t in [0, 1]: bottom to top across the image

The camera state lives in Taichi fields, so this module must be imported
after Taichi has been initialized.
"""

from .thin_lens import (
    ThinLensCamera,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    sample_camera_ray,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "setup_camera",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
    "sample_camera_ray",
]
