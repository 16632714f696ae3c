"""Sphere tracing renderer built on Taichi.

Scenes are described by signed distance functions; rays are marched toward
the nearest surface, reflected at every hit and shaded with soft-shadowed
point lights.

Subpackages:
    core: Vector utilities, surface samples, the framebuffer and the integrator
    geometry: Signed distance primitives and combinators
    materials: Tagged shading materials
    scene: The Scene interface, soft shadows, primitive and demo scenes
    camera: Sensor and pinhole camera
    preview: PPM/PNG export and Matplotlib preview
"""

__version__ = "0.1.0"
