"""Geometry module for signed distance primitives.

This module provides the distance functions scenes are built from:

Components:
    sdf: Sphere, plane and box signed distances plus union, intersection
        and subtraction combinators

All primitives are Taichi functions (@ti.func) so scenes can evaluate them
inside the marching kernels. Every primitive is a lower bound on the distance
to its surface, which keeps sphere tracing from overshooting.
"""

from .sdf import box, intersection, plane, sphere, subtraction, union

__all__ = [
    "sphere",
    "plane",
    "box",
    "union",
    "intersection",
    "subtraction",
]
