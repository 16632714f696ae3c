"""Tagged shading materials evaluated at surface samples.

A material turns a surface sample into an RGBA-like response: the first three
channels are the surface color, the fourth is the attenuation, the fraction
of the incoming power absorbed at the bounce. ``1 - attenuation`` carries on
along the reflected ray.

The set of materials is closed and tagged by MaterialKind:

    NORMAL:  color is the surface normal remapped to [0, 1], (n + 1) / 2
    SOLID:   a constant color
    CHECKER: two colors alternating on a grid over the surface UV, or over
             the world x/z coordinates when the scene provides no UV

Material parameters live in a MaterialLibrary, a Structure-of-Arrays store of
Taichi fields indexed by material id.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.library import MaterialLibrary
    >>> materials = MaterialLibrary()
    >>> shiny = materials.add_solid((0.9, 0.9, 0.9), attenuation=0.2)
    >>> ground = materials.add_checker((1, 1, 1), (0.1, 0.1, 0.1), scale=5.0)
"""

import logging
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import vec3, vec4
from spheretrace.core.sample import NO_MATERIAL, Sample

logger = logging.getLogger(__name__)


class MaterialKind(IntEnum):
    """Enumeration of supported material kinds.

    Used for material dispatch when a sample is shaded.
    """

    NORMAL = 0
    SOLID = 1
    CHECKER = 2


# Maximum number of materials per library
MAX_MATERIALS = 64


@ti.data_oriented
class MaterialLibrary:
    """Structure-of-Arrays storage for material parameters.

    Attributes:
        capacity: Maximum number of materials the library can hold.
        kinds: MaterialKind of each material.
        colors: Primary color of each material.
        alt_colors: Secondary color (checker materials only).
        scales: Checker cell size (checker materials only).
        attenuations: Fraction of power absorbed at each bounce.
        count: Number of materials added so far.
    """

    def __init__(self, capacity: int = MAX_MATERIALS) -> None:
        if capacity <= 0:
            raise ValueError(f"Material capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.kinds = ti.field(dtype=ti.i32, shape=capacity)
        self.colors = ti.Vector.field(3, dtype=ti.f32, shape=capacity)
        self.alt_colors = ti.Vector.field(3, dtype=ti.f32, shape=capacity)
        self.scales = ti.field(dtype=ti.f32, shape=capacity)
        self.attenuations = ti.field(dtype=ti.f32, shape=capacity)
        self.count = ti.field(dtype=ti.i32, shape=())

    def __len__(self) -> int:
        return int(self.count[None])

    def _add(
        self,
        kind: MaterialKind,
        color: tuple[float, float, float],
        alt_color: tuple[float, float, float],
        scale: float,
        attenuation: float,
    ) -> int:
        if not 0.0 <= attenuation <= 1.0:
            raise ValueError(f"Attenuation must be in [0, 1], got {attenuation}")
        idx = int(self.count[None])
        if idx >= self.capacity:
            raise RuntimeError(f"Maximum number of materials ({self.capacity}) exceeded")
        self.kinds[idx] = int(kind)
        self.colors[idx] = [float(c) for c in color]
        self.alt_colors[idx] = [float(c) for c in alt_color]
        self.scales[idx] = scale
        self.attenuations[idx] = attenuation
        self.count[None] = idx + 1
        logger.debug("Added %s material %d (attenuation=%.3f)", kind.name, idx, attenuation)
        return idx

    def add_normal(self, attenuation: float = 1.0) -> int:
        """Add a material that colors a surface by its normal.

        Args:
            attenuation: Fraction of power absorbed at each bounce.

        Returns:
            The material id.
        """
        return self._add(MaterialKind.NORMAL, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 1.0, attenuation)

    def add_solid(
        self,
        color: tuple[float, float, float],
        attenuation: float = 1.0,
    ) -> int:
        """Add a constant color material.

        Args:
            color: RGB color, each component in [0, 1].
            attenuation: Fraction of power absorbed at each bounce. Low values
                make a mirror-like surface.

        Returns:
            The material id.
        """
        return self._add(MaterialKind.SOLID, color, (0.0, 0.0, 0.0), 1.0, attenuation)

    def add_checker(
        self,
        color_a: tuple[float, float, float],
        color_b: tuple[float, float, float],
        scale: float = 1.0,
        attenuation: float = 1.0,
    ) -> int:
        """Add a two-color checkerboard material.

        Args:
            color_a: Color of the even cells.
            color_b: Color of the odd cells.
            scale: Size of a cell in UV (or world) units. Must be positive.
            attenuation: Fraction of power absorbed at each bounce.

        Returns:
            The material id.

        Raises:
            ValueError: If scale is not positive.
        """
        if scale <= 0.0:
            raise ValueError(f"Checker scale must be positive, got {scale}")
        return self._add(MaterialKind.CHECKER, color_a, color_b, scale, attenuation)

    def clear(self) -> None:
        """Remove all materials. Existing ids become invalid."""
        self.count[None] = 0

    @ti.func
    def _checker_color(self, material_id: ti.i32, sample: Sample) -> vec3:
        """Pick the checker cell color for a sample."""
        a = sample.position.x
        b = sample.position.z
        if sample.has_uv == 1:
            a = sample.uv.x
            b = sample.uv.y
        scale = self.scales[material_id]
        cell = ti.floor(a / scale) + ti.floor(b / scale)
        color = self.colors[material_id]
        if cell - 2.0 * ti.floor(cell * 0.5) > 0.5:
            color = self.alt_colors[material_id]
        return color

    @ti.func
    def evaluate(self, material_id: ti.i32, sample: Sample) -> vec4:
        """Evaluate a material at a surface sample.

        Args:
            material_id: The material id to evaluate.
            sample: A sample with hit == 1.

        Returns:
            vec4 of (r, g, b, attenuation). Zero for NO_MATERIAL or an id
            outside the library.
        """
        response = vec4(0.0, 0.0, 0.0, 0.0)
        if material_id != NO_MATERIAL and 0 <= material_id < self.count[None]:
            kind = self.kinds[material_id]
            color = self.colors[material_id]

            if kind == int(MaterialKind.NORMAL):
                color = (sample.normal + 1.0) * 0.5
            elif kind == int(MaterialKind.CHECKER):
                color = self._checker_color(material_id, sample)

            color = tm.clamp(color, 0.0, 1.0)
            response = vec4(color.x, color.y, color.z, self.attenuations[material_id])
        return response
