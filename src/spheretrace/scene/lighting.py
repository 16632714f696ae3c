"""Soft-shadow light power estimation by secondary sphere tracing.

From a surface hit a second ray is marched toward the light. At every step the
ratio between the distance to the nearest surface and the distance already
travelled measures how closely the ray grazes intervening geometry; the
smallest ratio, scaled by the light's area parameter k, is the penumbra
factor:

    res = min(res, k * d / t)

A large k gives hard shadow edges, a small k wide penumbrae. When the shadow
ray runs into a surface the light is fully occluded and the estimate is zero.

The estimator re-enters the scene's surface query, so it works for any Scene
subclass without knowing its geometry.
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import Ray, ray_at, vec3
from spheretrace.core.sample import Sample

# Starting parameter along the shadow ray, clears the surface being lit
SHADOW_T_START = 1e-3

# Distance beyond which the shadow ray is considered to reach open sky
SHADOW_MAX_DISTANCE = 1000.0

# Maximum marching steps for a shadow ray
SHADOW_MAX_STEPS = 256

# Distance below which a shadow ray has run into an occluder
SHADOW_EPSILON = 1e-5

# Default light area parameter (penumbra sharpness)
DEFAULT_LIGHT_AREA = 16.0


@ti.func
def sample_light_power(
    scene: ti.template(),
    sample: Sample,
    light_pos: vec3,
    light_area: ti.f32,
    max_steps: ti.i32,
) -> ti.f32:
    """Estimate the fraction of a light visible from a surface sample.

    The first step is exempt from the occlusion test: it starts next to the
    surface being lit, whose distance is close to zero by construction.

    Args:
        scene: The scene to march through.
        sample: A sample with hit == 1.
        light_pos: Position of the point light.
        light_area: Penumbra parameter k.
        max_steps: Maximum number of marching steps.

    Returns:
        Light power in [0, 1]. Exactly 0 when an occluder is found.
    """
    ray = Ray(origin=sample.position, direction=tm.normalize(light_pos - sample.position))
    t = SHADOW_T_START
    res = 1.0
    occluded = 0
    i = 0

    while i < max_steps and t < SHADOW_MAX_DISTANCE and occluded == 0:
        probe = scene.sample_surface(ray_at(ray, t))
        t += ti.abs(probe.dist_to_surface)

        if i > 0 and probe.dist_to_surface < SHADOW_EPSILON:
            occluded = 1
        else:
            res = ti.min(res, light_area * probe.dist_to_surface / t)
        i += 1

    power = 0.0
    if occluded == 0:
        power = tm.clamp(res, 0.0, 1.0)
    return power
