"""Signed distance primitives and combinators.

Each primitive returns the signed distance from a point to a surface:
positive outside, negative inside, zero on the surface. All of them are
Lipschitz-1 lower bounds on the true distance to the nearest surface, which is
what the marching loop needs to step safely.

Primitives are combined with min (union), max (intersection) or
max(a, -b) (subtraction). Combining lower bounds this way keeps them lower
bounds.

Example:
    >>> @ti.func
    ... def scene_sdf(p: vec3) -> ti.f32:
    ...     return union(
    ...         sphere(p, vec3(0.0, 0.0, 0.0), 2.5),
    ...         plane(p, vec3(0.0, 1.0, 0.0), -10.0),
    ...     )
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import vec3


@ti.func
def sphere(p: vec3, origin: vec3, radius: ti.f32) -> ti.f32:
    """Signed distance from p to a sphere.

    Args:
        p: The query point.
        origin: The center of the sphere.
        radius: The radius of the sphere.

    Returns:
        |origin - p| - radius.
    """
    return tm.length(origin - p) - radius


@ti.func
def plane(p: vec3, normal: vec3, height: ti.f32) -> ti.f32:
    """Signed distance from p to an infinite plane.

    The plane is the set of points x with x.normal == height; the half-space
    the normal points into is outside.

    Args:
        p: The query point.
        normal: Unit normal of the plane.
        height: Offset of the plane along its normal.

    Returns:
        p.normal - height.
    """
    return tm.dot(p, normal) - height


@ti.func
def box(p: vec3, origin: vec3, half_extents: vec3) -> ti.f32:
    """Signed distance from p to an axis-aligned box.

    The point is moved into the box's local frame and reflected into the
    positive octant, then the usual outside/inside split is applied: the
    length of the positive part of q outside, the largest component of q
    inside.

    Args:
        p: The query point.
        origin: The center of the box.
        half_extents: Half the size of the box along each axis.

    Returns:
        The signed distance to the box surface.
    """
    q = ti.abs(p - origin) - half_extents
    outside = tm.length(ti.max(q, 0.0))
    inside = ti.min(ti.max(q.x, q.y, q.z), 0.0)
    return outside + inside


@ti.func
def union(a: ti.f32, b: ti.f32) -> ti.f32:
    """Union of two distance fields."""
    return ti.min(a, b)


@ti.func
def intersection(a: ti.f32, b: ti.f32) -> ti.f32:
    """Intersection of two distance fields."""
    return ti.max(a, b)


@ti.func
def subtraction(a: ti.f32, b: ti.f32) -> ti.f32:
    """Remove the volume of b from a."""
    return ti.max(a, -b)
