"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection

Intersection routines are Taichi functions (@ti.func) that take a Ray and
return a HitRecord whose normal always faces the incoming ray:
    record = hit_sphere(ray, sphere)

Scene-level closest-hit queries live in glint.scene.intersection.
"""

from .sphere import HitRecord, Sphere, hit_sphere, set_face_normal

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "set_face_normal",
]
