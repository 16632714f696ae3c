"""Core tracing module.

Components:
    ray: Ray data structure and vector utilities
    sample: Surface samples returned by scene queries
    framebuffer: Row-major RGB output buffer
    integrator: The sphere-marching loop and the tracing kernels

All per-pixel work runs in Taichi kernels; each pixel is traced
independently and writes its own framebuffer slot.
"""

from .framebuffer import Framebuffer
from .ray import (
    Ray,
    build_onb_from_normal,
    cross,
    dot,
    is_finite,
    length,
    make_ray,
    mat4,
    normalize,
    ray_at,
    reflect,
    rotate_transposed,
    transform_point,
    vec2,
    vec3,
    vec4,
)
from .sample import NO_MATERIAL, Sample, SurfaceSample, make_hit_sample, make_miss_sample

# Note: integrator is NOT imported here to avoid circular imports (it depends
# on the scene package). Import it from spheretrace.core.integrator.

__all__ = [
    "Framebuffer",
    "Ray",
    "ray_at",
    "make_ray",
    "vec2",
    "vec3",
    "vec4",
    "mat4",
    "length",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "is_finite",
    "build_onb_from_normal",
    "transform_point",
    "rotate_transposed",
    "Sample",
    "SurfaceSample",
    "NO_MATERIAL",
    "make_hit_sample",
    "make_miss_sample",
]
