"""Materials module for surface shading.

This module implements the shading responses attached to surface samples:

Components:
    library: MaterialKind tags and the MaterialLibrary parameter store

Each material evaluates a sample to (r, g, b, attenuation). The color is
multiplied by the scene's light at the sample; the attenuation is the fraction
of the remaining ray power absorbed at the bounce.

Materials are evaluated inside the marching kernels, so all evaluation code is
made of Taichi functions.
"""

from .library import MAX_MATERIALS, MaterialKind, MaterialLibrary

__all__ = [
    "MaterialKind",
    "MaterialLibrary",
    "MAX_MATERIALS",
]
