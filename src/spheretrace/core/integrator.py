"""Sphere-marching integrator.

This module implements the tracing kernel. Each pixel's ray is marched
through the scene's signed distance field: the distance to the nearest surface
is a safe step length, so the ray advances by it until it lands on a surface.

At a surface the ray reflects about the normal and continues, carrying a
power budget. Every shaded hit adds its material color times the light
arriving at the hit, weighted by the remaining power, and then absorbs the
material's attenuation:

    color += rgb * sample_light(hit) * power
    power *= 1 - attenuation

Marching stops when the power falls below the threshold, the travelled
distance exceeds max_distance, or the step budget is spent. Whatever power is
left picks up the background color.

A step can be negative when the query point ended up inside geometry; the ray
then backs up, which corrects the overshoot.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.integrator import trace
    >>> from spheretrace.scene.demo import create_sphere_scene
    >>>
    >>> scene, camera = create_sphere_scene()
    >>> framebuffer = trace(camera, scene)
    >>> framebuffer.save_as_ppm("sphere.ppm")
"""

import logging
import time
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from spheretrace.core.framebuffer import Framebuffer
from spheretrace.core.ray import Ray, is_finite, ray_at, reflect, vec3
from spheretrace.core.sample import NO_MATERIAL, SurfaceSample, make_miss_sample
from spheretrace.scene.base import HIT_THRESHOLD

logger = logging.getLogger(__name__)

# =============================================================================
# Tracing Constants
# =============================================================================

# Maximum marching steps per pixel, bounces included
MAX_STEPS = 256

# Travelled distance beyond which a ray escapes
MAX_DISTANCE = 1000.0

# Remaining power below which a ray stops
POWER_THRESHOLD = 1e-5

# Ray parameter of the first sample, just in front of the pinhole
T_START = 1e-4

# Offset of a reflected ray's origin along the normal, clears the hit zone
SURFACE_OFFSET = 2.0 * HIT_THRESHOLD

# Number of floats in a packed march result
PACKED_MARCH_SIZE = 17


@dataclass
class TracerConfig:
    """Tracing parameters shared by every pixel of a frame.

    Attributes:
        max_steps: Maximum marching steps per pixel.
        max_distance: Travelled distance at which a ray escapes.
        power_threshold: Remaining power below which a ray stops.
        background: Color picked up by the power left when a ray stops.
    """

    max_steps: int = MAX_STEPS
    max_distance: float = MAX_DISTANCE
    power_threshold: float = POWER_THRESHOLD
    background: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        if self.max_steps <= 0:
            raise ValueError(f"max_steps must be positive, got {self.max_steps}")
        if self.max_distance <= 0.0:
            raise ValueError(f"max_distance must be positive, got {self.max_distance}")
        if not 0.0 < self.power_threshold <= 1.0:
            raise ValueError(f"power_threshold must be in (0, 1], got {self.power_threshold}")
        if len(self.background) != 3 or min(self.background) < 0.0:
            raise ValueError(f"background must be a non-negative RGB triple, got {self.background}")


@ti.dataclass
class MarchState:
    """Final state of a marched ray.

    Attributes:
        color: Accumulated color.
        power: Power left when marching stopped.
        steps: Marching steps taken.
        bounces: Surface hits (reflections).
        travelled: Total distance travelled, bounces included.
        escaped: 1 when the ray ran past max_distance.
        hit: 1 when the ray hit at least one surface.
        hit_dist, hit_position, hit_normal, hit_material: The first hit.
    """

    color: vec3
    power: ti.f32
    steps: ti.i32
    bounces: ti.i32
    travelled: ti.f32
    escaped: ti.i32
    hit: ti.i32
    hit_dist: ti.f32
    hit_position: vec3
    hit_normal: vec3
    hit_material: ti.i32


@dataclass
class MarchResult:
    """Host-side copy of a marched ray's final state.

    Attributes:
        color: Accumulated RGB color (unclamped).
        power: Power left when marching stopped.
        steps: Marching steps taken.
        bounces: Number of reflections.
        travelled: Total distance travelled.
        escaped: Whether the ray ran past max_distance.
        first_hit: The first surface sample; a miss when the ray hit nothing.
    """

    color: npt.NDArray[np.float32]
    power: float
    steps: int
    bounces: int
    travelled: float
    escaped: bool
    first_hit: SurfaceSample


# =============================================================================
# Marching
# =============================================================================


@ti.func
def integrate(
    scene: ti.template(),
    ray: Ray,
    max_steps: ti.i32,
    max_distance: ti.f32,
    power_threshold: ti.f32,
    background: vec3,
) -> MarchState:
    """March a ray through a scene, reflecting at every surface.

    Args:
        scene: The scene to march through.
        ray: The primary ray. Its direction must be unit length.
        max_steps: Maximum marching steps.
        max_distance: Travelled distance at which the ray escapes.
        power_threshold: Remaining power below which marching stops.
        background: Color picked up by the remaining power.

    Returns:
        The final MarchState.
    """
    assert is_finite(ray.origin) == 1 and is_finite(ray.direction) == 1, "Non-finite ray"

    current = Ray(origin=ray.origin, direction=ray.direction)
    color = vec3(0.0, 0.0, 0.0)
    power = 1.0
    t = T_START
    travelled = T_START
    steps = 0
    bounces = 0
    previous = ray.origin
    first_hit = make_miss_sample(0.0)

    while steps < max_steps and travelled < max_distance and power >= power_threshold:
        p = ray_at(current, t)
        sample = scene.sample_surface(p)
        sample.dist_travelled = travelled

        color += scene.sample_space(previous, p) * power
        previous = p

        t += sample.dist_to_surface
        travelled += sample.dist_to_surface
        steps += 1

        if sample.hit == 1:
            if bounces == 0:
                first_hit = sample
            bounces += 1

            current.direction = reflect(current.direction, sample.normal)
            current.origin = sample.position + sample.normal * SURFACE_OFFSET
            previous = current.origin
            t = 0.0

            if sample.material != NO_MATERIAL:
                response = scene.sample_material(sample)
                attenuation = tm.clamp(response.w, 0.0, 1.0)
                color += vec3(response.x, response.y, response.z) * scene.sample_light(sample) * power
                power *= 1.0 - attenuation

    if power >= power_threshold:
        color += background * power

    return MarchState(
        color=color,
        power=power,
        steps=steps,
        bounces=bounces,
        travelled=travelled,
        escaped=ti.select(travelled >= max_distance, 1, 0),
        hit=first_hit.hit,
        hit_dist=first_hit.dist_travelled,
        hit_position=first_hit.position,
        hit_normal=first_hit.normal,
        hit_material=first_hit.material,
    )


@ti.func
def pixel_ray(camera: ti.template(), row: ti.i32, col: ti.i32) -> Ray:
    """Primary ray for a pixel. Row 0 is the top of the image."""
    v = ti.cast(row, ti.f32) / camera.sensor.rows
    u = ti.cast(col, ti.f32) / camera.sensor.cols
    return camera.ray(1.0 - u, 1.0 - v)


@ti.kernel
def _trace_kernel(
    camera: ti.template(),
    scene: ti.template(),
    pixels: ti.types.ndarray(dtype=ti.u8, ndim=3),
    max_steps: ti.i32,
    max_distance: ti.f32,
    power_threshold: ti.f32,
    background: vec3,
):
    for r, c in ti.ndrange(pixels.shape[0], pixels.shape[1]):
        state = integrate(scene, pixel_ray(camera, r, c), max_steps, max_distance, power_threshold, background)
        for i in ti.static(range(3)):
            pixels[r, c, i] = ti.cast(tm.clamp(state.color[i] * 255.0, 0.0, 255.0), ti.u8)


@ti.kernel
def _trace_pixel_kernel(
    camera: ti.template(),
    scene: ti.template(),
    row: ti.i32,
    col: ti.i32,
    max_steps: ti.i32,
    max_distance: ti.f32,
    power_threshold: ti.f32,
    background: vec3,
    out: ti.types.ndarray(dtype=ti.f32, ndim=1),
):
    for _ in range(1):
        state = integrate(scene, pixel_ray(camera, row, col), max_steps, max_distance, power_threshold, background)
        for i in ti.static(range(3)):
            out[i] = state.color[i]


@ti.kernel
def _march_kernel(
    scene: ti.template(),
    origin: vec3,
    direction: vec3,
    max_steps: ti.i32,
    max_distance: ti.f32,
    power_threshold: ti.f32,
    background: vec3,
    out: ti.types.ndarray(dtype=ti.f32, ndim=1),
):
    for _ in range(1):
        state = integrate(
            scene,
            Ray(origin=origin, direction=tm.normalize(direction)),
            max_steps,
            max_distance,
            power_threshold,
            background,
        )
        for i in ti.static(range(3)):
            out[i] = state.color[i]
            out[10 + i] = state.hit_position[i]
            out[13 + i] = state.hit_normal[i]
        out[3] = state.power
        out[4] = ti.cast(state.steps, ti.f32)
        out[5] = ti.cast(state.bounces, ti.f32)
        out[6] = state.travelled
        out[7] = ti.cast(state.escaped, ti.f32)
        out[8] = ti.cast(state.hit, ti.f32)
        out[9] = state.hit_dist
        out[16] = ti.cast(state.hit_material, ti.f32)


# =============================================================================
# Public Tracing API
# =============================================================================


def _config_args(config: TracerConfig | None) -> tuple[int, float, float, tm.vec3]:
    config = config if config is not None else TracerConfig()
    return (
        config.max_steps,
        config.max_distance,
        config.power_threshold,
        tm.vec3(*config.background),
    )


def trace(camera, scene, config: TracerConfig | None = None) -> Framebuffer:
    """Trace every pixel of the camera's sensor.

    Args:
        camera: A Pinhole camera.
        scene: Any Scene.
        config: Tracing parameters, defaults when omitted.

    Returns:
        A new Framebuffer of the sensor's resolution.
    """
    framebuffer = Framebuffer(camera.rows, camera.cols)
    logger.info("Tracing %dx%d frame", camera.cols, camera.rows)

    start = time.perf_counter()
    _trace_kernel(camera, scene, framebuffer.buffer, *_config_args(config))
    ti.sync()
    logger.info("Traced frame in %.3fs", time.perf_counter() - start)

    return framebuffer


def trace_pixel(
    camera,
    scene,
    row: int,
    col: int,
    config: TracerConfig | None = None,
) -> tuple[float, float, float]:
    """Trace a single pixel and return its unclamped color.

    This is a Python-callable function for testing. For full frames use
    trace() which processes all pixels in parallel.

    Args:
        camera: A Pinhole camera.
        scene: Any Scene.
        row: Pixel row (0 = top).
        col: Pixel column (0 = left).
        config: Tracing parameters.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        IndexError: If the pixel lies outside the sensor.
    """
    if not (0 <= row < camera.rows and 0 <= col < camera.cols):
        raise IndexError(f"Pixel ({row}, {col}) outside {camera.rows}x{camera.cols} sensor")

    out = np.zeros(3, dtype=np.float32)
    _trace_pixel_kernel(camera, scene, row, col, *_config_args(config), out)
    return (float(out[0]), float(out[1]), float(out[2]))


def march(
    scene,
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    config: TracerConfig | None = None,
) -> MarchResult:
    """March an arbitrary ray through a scene.

    Args:
        scene: Any Scene.
        origin: Ray origin.
        direction: Ray direction, normalized before marching.
        config: Tracing parameters.

    Returns:
        The MarchResult of the ray.
    """
    out = np.zeros(PACKED_MARCH_SIZE, dtype=np.float32)
    _march_kernel(scene, tm.vec3(*origin), tm.vec3(*direction), *_config_args(config), out)

    hit = out[8] > 0.5
    first_hit = SurfaceSample(
        dist_travelled=float(out[9]),
        dist_to_surface=0.0,
        position=out[10:13].copy() if hit else None,
        normal=out[13:16].copy() if hit else None,
        material=int(round(float(out[16]))) if hit else NO_MATERIAL,
    )
    return MarchResult(
        color=out[0:3].copy(),
        power=float(out[3]),
        steps=int(round(float(out[4]))),
        bounces=int(round(float(out[5]))),
        travelled=float(out[6]),
        escaped=bool(out[7] > 0.5),
        first_hit=first_hit,
    )
