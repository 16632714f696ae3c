"""Ray data structure and vector utilities for sphere tracing.

This module provides the fundamental Ray dataclass and the vector helpers the
marching loop, the camera and the scene share. All operations are Taichi
functions so they can be called from inside kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, 1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type aliases for vectors using Taichi's math module
vec2 = tm.vec2
vec3 = tm.vec3
vec4 = tm.vec4
mat4 = tm.mat4


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Unit length for
            every ray produced by the camera or by a reflection.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Negative values lie behind the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length."""
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product of two vectors."""
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes d' = d - 2(d.n)n. The normal should be unit length for the
    reflected vector to keep the length of the incident vector.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def is_finite(v: vec3) -> ti.i32:
    """Check that every component of a vector is finite.

    Returns:
        1 if no component is NaN or infinite, 0 otherwise.
    """
    finite = 1
    for i in ti.static(range(3)):
        if tm.isnan(v[i]) or tm.isinf(v[i]):
            finite = 0
    return finite


@ti.func
def build_onb_from_normal(normal: vec3):
    """Build an orthonormal basis from a normal vector.

    Creates a local coordinate frame where the normal is the z-axis.

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A tuple (tangent, bitangent, normal) forming an orthonormal basis.
    """
    # Choose a vector not parallel to normal
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(normal.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = normalize(cross(a, normal))
    bitangent = cross(normal, tangent)
    return tangent, bitangent, normal


# =============================================================================
# Homogeneous Transforms
# =============================================================================


@ti.func
def transform_point(m: mat4, p: vec3) -> vec3:
    """Apply a 4x4 affine transform to a point (w = 1).

    Args:
        m: Row-major affine transform.
        p: The point to transform.

    Returns:
        The transformed point, rotation and translation applied.
    """
    result = vec3(0.0, 0.0, 0.0)
    for i in ti.static(range(3)):
        result[i] = m[i, 0] * p.x + m[i, 1] * p.y + m[i, 2] * p.z + m[i, 3]
    return result


@ti.func
def rotate_transposed(m: mat4, d: vec3) -> vec3:
    """Apply the transpose of the upper-left 3x3 block of m to a direction.

    Args:
        m: Row-major affine transform.
        d: The direction to rotate. Translation is ignored.

    Returns:
        The rotated direction R^T d.
    """
    result = vec3(0.0, 0.0, 0.0)
    for i in ti.static(range(3)):
        result[i] = m[0, i] * d.x + m[1, i] * d.y + m[2, i] * d.z
    return result
