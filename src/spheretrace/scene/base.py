"""Scene interface for sphere tracing.

A Scene is anything that can answer three questions about a point in space:

    sample_sdf(p):        how far is the nearest surface (signed)?
    sample_surface(p):    is p on a surface, and if so what does it look like?
    sample_light(sample): how much light reaches a surface sample?

Subclasses only have to provide ``sample_sdf`` as a Taichi function; the base
class derives surfaces, normals, materials and lighting from it. Subclasses
may also override ``surface_material``, ``surface_uv``, ``sample_light`` or
``sample_space`` to refine the defaults.

Scenes are Taichi data-oriented classes: they own their parameters in Taichi
fields and are handed to the tracing kernels as template arguments, so the
overridden methods are picked at kernel compile time. A scene is read-only
while a frame is traced.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.geometry.sdf import sphere
    >>>
    >>> @ti.data_oriented
    ... class Ball(Scene):
    ...     @ti.func
    ...     def sample_sdf(self, p):
    ...         return sphere(p, vec3(0.0, 0.0, 10.0), 5.0)
    >>>
    >>> scene = Ball()
    >>> scene.add_light((0.0, 100.0, 0.0))
    >>> scene.probe_sdf((0.0, 0.0, 0.0))
    5.0
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import vec2, vec3
from spheretrace.core.sample import (
    NO_MATERIAL,
    PACKED_SAMPLE_SIZE,
    Sample,
    SurfaceSample,
    make_hit_sample,
    make_miss_sample,
    pack_sample,
)
from spheretrace.materials.library import MaterialLibrary
from spheretrace.scene.lighting import (
    DEFAULT_LIGHT_AREA,
    SHADOW_MAX_STEPS,
    sample_light_power,
)

logger = logging.getLogger(__name__)

# Distance below which a point counts as lying on a surface
HIT_THRESHOLD = 1e-3

# Step used for the finite-difference normal
NORMAL_EPSILON = 1e-4

# Maximum number of point lights per scene
MAX_LIGHTS = 8

# Default ambient light
DEFAULT_AMBIENT = (0.1, 0.1, 0.1)


@ti.func
def numerical_normal(scene: ti.template(), d0: ti.f32, p: vec3, e: ti.f32) -> vec3:
    """Estimate the surface normal at p from the distance field gradient.

    Uses forward differences along each axis from the already evaluated
    distance d0.

    Args:
        scene: The scene whose sample_sdf is differentiated.
        d0: sample_sdf(p).
        p: The point on (or next to) the surface.
        e: Finite-difference step.

    Returns:
        The normalized gradient.
    """
    dx = scene.sample_sdf(p + vec3(e, 0.0, 0.0)) - d0
    dy = scene.sample_sdf(p + vec3(0.0, e, 0.0)) - d0
    dz = scene.sample_sdf(p + vec3(0.0, 0.0, e)) - d0

    assert dx != 0.0 or dy != 0.0 or dz != 0.0, "Degenerate distance field gradient"

    return tm.normalize(vec3(dx, dy, dz))


@ti.data_oriented
class Scene:
    """Base class for sphere traced scenes.

    Attributes:
        materials: The MaterialLibrary used to shade samples.
        max_lights: Capacity of the point light store.
        ambient: Ambient light added to every lit sample.
        light_positions: Position of each point light.
        light_colors: Color (and intensity) of each point light.
        light_areas: Penumbra parameter k of each point light.
        num_lights: Number of lights added so far.
        default_material: Material assigned to hits by surface_material.
    """

    def __init__(
        self,
        materials: MaterialLibrary | None = None,
        *,
        default_material: int | None = None,
        ambient: tuple[float, float, float] = DEFAULT_AMBIENT,
        max_lights: int = MAX_LIGHTS,
    ) -> None:
        """Initialize the light store and the material binding.

        Args:
            materials: Material library to shade with. A new one is created
                when omitted.
            default_material: Material id for hits. A normal-shaded material
                is added to the library when omitted.
            ambient: Ambient light color.
            max_lights: Maximum number of point lights.
        """
        if max_lights <= 0:
            raise ValueError(f"max_lights must be positive, got {max_lights}")

        self.materials = materials if materials is not None else MaterialLibrary()
        self.max_lights = max_lights

        self.ambient = ti.Vector.field(3, dtype=ti.f32, shape=())
        self.light_positions = ti.Vector.field(3, dtype=ti.f32, shape=max_lights)
        self.light_colors = ti.Vector.field(3, dtype=ti.f32, shape=max_lights)
        self.light_areas = ti.field(dtype=ti.f32, shape=max_lights)
        self.num_lights = ti.field(dtype=ti.i32, shape=())
        self.default_material = ti.field(dtype=ti.i32, shape=())

        if default_material is None:
            default_material = self.materials.add_normal()
        self.default_material[None] = default_material
        self.set_ambient(ambient)

    # =========================================================================
    # Host-side configuration
    # =========================================================================

    def set_ambient(self, color: tuple[float, float, float]) -> None:
        """Set the ambient light color."""
        self.ambient[None] = [float(c) for c in color]

    def add_light(
        self,
        position: tuple[float, float, float],
        color: tuple[float, float, float] = (1.0, 1.0, 1.0),
        area: float = DEFAULT_LIGHT_AREA,
    ) -> int:
        """Add a point light to the scene.

        Args:
            position: Light position in world space.
            color: Light color, may exceed 1 for bright lights.
            area: Penumbra parameter k, larger means sharper shadows.

        Returns:
            The index of the added light.

        Raises:
            ValueError: If area is not positive.
            RuntimeError: If the maximum number of lights is exceeded.
        """
        if area <= 0.0:
            raise ValueError(f"Light area must be positive, got {area}")
        idx = int(self.num_lights[None])
        if idx >= self.max_lights:
            raise RuntimeError(f"Maximum number of lights ({self.max_lights}) exceeded")
        self.light_positions[idx] = [float(c) for c in position]
        self.light_colors[idx] = [float(c) for c in color]
        self.light_areas[idx] = area
        self.num_lights[None] = idx + 1
        logger.debug("Added light %d at %s", idx, tuple(position))
        return idx

    def clear_lights(self) -> None:
        """Remove all point lights."""
        self.num_lights[None] = 0

    @property
    def light_count(self) -> int:
        """Number of point lights in the scene."""
        return int(self.num_lights[None])

    # =========================================================================
    # Scene interface (Taichi scope)
    # =========================================================================

    def sample_sdf(self, p):
        """Signed distance from p to the nearest surface.

        Subclasses must override this with a Taichi function. The result must
        be finite everywhere in the traced volume and must not overestimate
        the distance to the nearest surface.
        """
        raise NotImplementedError(f"{type(self).__name__} does not define sample_sdf")

    @ti.func
    def surface_material(self, p: vec3) -> ti.i32:
        """Material id of the surface at p."""
        return self.default_material[None]

    @ti.func
    def surface_uv(self, p: vec3, normal: vec3):
        """Surface parameterization at p.

        Returns:
            A tuple (uv, has_uv). The base scene has no parameterization.
        """
        return vec2(0.0, 0.0), 0

    @ti.func
    def sample_surface(self, p: vec3) -> Sample:
        """Query the surface at p.

        A point within HIT_THRESHOLD of the surface is a hit: the sample gets
        the point as its position, the numerical normal, the material and the
        UV. A hit evaluated inside the geometry is moved back onto the surface
        along the normal so rays leaving it do not start inside the solid.

        Args:
            p: The query point.

        Returns:
            A hit sample, or a miss sample carrying only the distance.
        """
        d = self.sample_sdf(p)
        assert not tm.isnan(d), "Signed distance evaluated to NaN"

        sample = make_miss_sample(d)
        if ti.abs(d) < HIT_THRESHOLD:
            normal = numerical_normal(self, d, p, NORMAL_EPSILON)
            position = p
            if d < 0.0:
                position = p + normal * -d
            sample = make_hit_sample(d, position, normal, self.surface_material(position))
            uv, has_uv = self.surface_uv(position, normal)
            sample.uv = uv
            sample.has_uv = has_uv
        return sample

    @ti.func
    def sample_light(self, sample: Sample) -> vec3:
        """Light arriving at a surface sample.

        The ambient term plus, for every point light facing the surface, the
        light color scaled by the cosine to the light and by the soft shadow
        estimate.

        Args:
            sample: A sample with hit == 1.

        Returns:
            The incoming light color.
        """
        radiance = self.ambient[None]
        for i in range(self.num_lights[None]):
            light_pos = self.light_positions[i]
            to_light = tm.normalize(light_pos - sample.position)
            cosine = tm.dot(sample.normal, to_light)
            if cosine > 0.0:
                power = sample_light_power(self, sample, light_pos, self.light_areas[i], SHADOW_MAX_STEPS)
                radiance += self.light_colors[i] * cosine * power
        return radiance

    @ti.func
    def sample_space(self, p0: vec3, p1: vec3) -> vec3:
        """Light picked up by the medium between two marching points.

        Empty space contributes nothing; volumetric scenes override this.
        """
        return vec3(0.0, 0.0, 0.0)

    @ti.func
    def sample_material(self, sample: Sample):
        """Shade a sample with its material, as (r, g, b, attenuation)."""
        return self.materials.evaluate(sample.material, sample)

    # =========================================================================
    # Host-side probes
    # =========================================================================
    # Each probe runs a single-iteration outer loop so the loops inside the
    # scene functions stay serial.

    @ti.kernel
    def _probe_sdf_kernel(self, x: ti.f32, y: ti.f32, z: ti.f32, out: ti.types.ndarray(dtype=ti.f32, ndim=1)):
        for i in range(1):
            out[i] = self.sample_sdf(vec3(x, y, z))

    @ti.kernel
    def _probe_surface_kernel(self, x: ti.f32, y: ti.f32, z: ti.f32, out: ti.types.ndarray(dtype=ti.f32, ndim=1)):
        for _ in range(1):
            pack_sample(self.sample_surface(vec3(x, y, z)), out)

    @ti.kernel
    def _probe_light_kernel(self, x: ti.f32, y: ti.f32, z: ti.f32, out: ti.types.ndarray(dtype=ti.f32, ndim=1)):
        for _ in range(1):
            sample = self.sample_surface(vec3(x, y, z))
            radiance = vec3(0.0, 0.0, 0.0)
            if sample.hit == 1:
                radiance = self.sample_light(sample)
            for c in ti.static(range(3)):
                out[c] = radiance[c]

    @ti.kernel
    def _light_power_kernel(
        self,
        position: ti.types.ndarray(dtype=ti.f32, ndim=1),
        light_pos: ti.types.ndarray(dtype=ti.f32, ndim=1),
        area: ti.f32,
        max_steps: ti.i32,
        out: ti.types.ndarray(dtype=ti.f32, ndim=1),
    ):
        for i in range(1):
            p = vec3(position[0], position[1], position[2])
            light = vec3(light_pos[0], light_pos[1], light_pos[2])
            sample = make_hit_sample(0.0, p, tm.normalize(light - p), NO_MATERIAL)
            out[i] = sample_light_power(self, sample, light, area, max_steps)

    def probe_sdf(self, point: tuple[float, float, float]) -> float:
        """Evaluate sample_sdf at a single point."""
        x, y, z = (float(c) for c in point)
        out = np.zeros(1, dtype=np.float32)
        self._probe_sdf_kernel(x, y, z, out)
        return float(out[0])

    def probe_surface(self, point: tuple[float, float, float]) -> SurfaceSample:
        """Evaluate sample_surface at a single point.

        Returns:
            The host-side copy of the sample.
        """
        x, y, z = (float(c) for c in point)
        out = np.zeros(PACKED_SAMPLE_SIZE, dtype=np.float32)
        self._probe_surface_kernel(x, y, z, out)
        return SurfaceSample.from_packed(out)

    def probe_light(self, point: tuple[float, float, float]) -> npt.NDArray[np.float32]:
        """Evaluate sample_light at the surface sample at point.

        Returns:
            RGB light arriving at the point, zero when the point is not on
            a surface.
        """
        x, y, z = (float(c) for c in point)
        out = np.zeros(3, dtype=np.float32)
        self._probe_light_kernel(x, y, z, out)
        return out

    def light_power(
        self,
        position: tuple[float, float, float],
        light_position: tuple[float, float, float],
        light_area: float = DEFAULT_LIGHT_AREA,
        max_steps: int = SHADOW_MAX_STEPS,
    ) -> float:
        """Run the soft shadow estimator from a surface point toward a light.

        Args:
            position: A point on a surface of the scene.
            light_position: Position of the light.
            light_area: Penumbra parameter k.
            max_steps: Maximum number of shadow marching steps.

        Returns:
            Light power in [0, 1].
        """
        out = np.zeros(1, dtype=np.float32)
        self._light_power_kernel(
            np.asarray(position, dtype=np.float32),
            np.asarray(light_position, dtype=np.float32),
            light_area,
            max_steps,
            out,
        )
        return float(out[0])
