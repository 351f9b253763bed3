"""Geometry module: hit records and primitives.

Components:
    hit_record: Intersection record with face-oriented normals
    sphere: Sphere primitive with ray-sphere intersection

All intersection routines are Taichi functions. A primitive test returns a
HitRecord whose ``hit`` flag tells whether the ray struck the surface within
the queried [t_min, t_max] interval.
"""

from .hit_record import HitRecord, make_hit_record, make_miss_record, set_face_normal
from .sphere import Sphere, hit_sphere, make_sphere

__all__ = [
    "HitRecord",
    "set_face_normal",
    "make_hit_record",
    "make_miss_record",
    "Sphere",
    "hit_sphere",
    "make_sphere",
]
