"""Scene module for distance-field scene descriptions.

Components:
    base: The Scene interface (distance, surface, light, space and material
        queries) and the numerical normal
    lighting: Soft-shadow light power estimation
    primitives: PrimitiveScene, a union of spheres, planes and boxes
    demo: Ready-made scenes with cameras

Scenes are Taichi data-oriented classes. Their parameters live in Taichi
fields, and they are passed to the tracing kernels as template arguments.
"""

from .base import HIT_THRESHOLD, MAX_LIGHTS, NORMAL_EPSILON, Scene, numerical_normal
from .demo import SphereSceneParams, create_box_scene, create_sphere_scene
from .lighting import SHADOW_EPSILON, SHADOW_MAX_STEPS, sample_light_power
from .primitives import MAX_BOXES, MAX_PLANES, MAX_SPHERES, PrimitiveKind, PrimitiveScene

__all__ = [
    # Base module
    "Scene",
    "numerical_normal",
    "HIT_THRESHOLD",
    "NORMAL_EPSILON",
    "MAX_LIGHTS",
    # Lighting module
    "sample_light_power",
    "SHADOW_EPSILON",
    "SHADOW_MAX_STEPS",
    # Primitives module
    "PrimitiveScene",
    "PrimitiveKind",
    "MAX_SPHERES",
    "MAX_PLANES",
    "MAX_BOXES",
    # Demo module
    "SphereSceneParams",
    "create_sphere_scene",
    "create_box_scene",
]
