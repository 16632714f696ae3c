"""Surface samples produced by querying a scene at a point.

A sample records how far the query point is from the nearest surface and, when
the point is close enough to count as a hit, where that surface is and how it
is oriented. The normal and the position describe the same hit event, so they
are either both present or both absent:

    - Inside kernels the presence of both is a single ``hit`` flag, and samples
      are built only through ``make_miss_sample`` and ``make_hit_sample``.
    - On the host, ``SurfaceSample`` checks the pairing when it is constructed.

Example:
    >>> sample = scene.probe_surface((0.0, 0.0, -2.5))
    >>> sample.is_hit
    True
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti

from spheretrace.core.ray import vec2, vec3

# Material id for samples with no shading contribution
NO_MATERIAL = -1

# Number of floats a packed sample occupies in a read-back buffer
PACKED_SAMPLE_SIZE = 13


@ti.dataclass
class Sample:
    """Result of querying a scene at a point.

    Attributes:
        dist_travelled: Cumulative ray parameter at which the query was made.
        dist_to_surface: Signed distance to the nearest surface (negative
            inside geometry).
        hit: 1 when normal and position are present, 0 otherwise.
        normal: Unit surface normal. Only valid if hit == 1.
        position: Hit point. Only valid if hit == 1.
        has_uv: 1 when the scene provides a surface parameterization.
        uv: Surface parameterization. Only valid if has_uv == 1.
        material: Material id, NO_MATERIAL when there is nothing to shade.
    """

    dist_travelled: ti.f32
    dist_to_surface: ti.f32
    hit: ti.i32
    normal: vec3
    position: vec3
    has_uv: ti.i32
    uv: vec2
    material: ti.i32


@ti.func
def make_miss_sample(dist_to_surface: ti.f32) -> Sample:
    """Create a sample for a point that is still in free space."""
    return Sample(
        dist_travelled=0.0,
        dist_to_surface=dist_to_surface,
        hit=0,
        normal=vec3(0.0, 0.0, 0.0),
        position=vec3(0.0, 0.0, 0.0),
        has_uv=0,
        uv=vec2(0.0, 0.0),
        material=NO_MATERIAL,
    )


@ti.func
def make_hit_sample(
    dist_to_surface: ti.f32,
    position: vec3,
    normal: vec3,
    material: ti.i32,
) -> Sample:
    """Create a sample for a confirmed surface hit."""
    return Sample(
        dist_travelled=0.0,
        dist_to_surface=dist_to_surface,
        hit=1,
        normal=normal,
        position=position,
        has_uv=0,
        uv=vec2(0.0, 0.0),
        material=material,
    )


@ti.func
def pack_sample(sample: Sample, out: ti.template()):
    """Write a sample into a flat float buffer for host read-back.

    Layout: dist_travelled, dist_to_surface, hit, position (3), normal (3),
    has_uv, uv (2), material.
    """
    out[0] = sample.dist_travelled
    out[1] = sample.dist_to_surface
    out[2] = ti.cast(sample.hit, ti.f32)
    for i in ti.static(range(3)):
        out[3 + i] = sample.position[i]
        out[6 + i] = sample.normal[i]
    out[9] = ti.cast(sample.has_uv, ti.f32)
    out[10] = sample.uv.x
    out[11] = sample.uv.y
    out[12] = ti.cast(sample.material, ti.f32)


@dataclass(frozen=True)
class SurfaceSample:
    """Host-side copy of a Sample.

    Optional fields are None when absent. Construction fails when only one of
    normal and position is given, or when uv is given without a hit.

    Attributes:
        dist_travelled: Cumulative ray parameter at the query.
        dist_to_surface: Signed distance to the nearest surface.
        normal: Unit surface normal, or None.
        position: Hit point, or None.
        uv: Surface parameterization, or None.
        material: Material id, NO_MATERIAL when absent.
    """

    dist_travelled: float
    dist_to_surface: float
    normal: npt.NDArray[np.float32] | None = None
    position: npt.NDArray[np.float32] | None = None
    uv: npt.NDArray[np.float32] | None = None
    material: int = NO_MATERIAL

    def __post_init__(self) -> None:
        if (self.normal is None) != (self.position is None):
            raise ValueError("normal and position must be both present or both absent")
        if self.uv is not None and self.position is None:
            raise ValueError("uv requires a surface hit")

    @property
    def is_hit(self) -> bool:
        """Whether the sample lies on a surface."""
        return self.position is not None

    @classmethod
    def from_packed(cls, packed: npt.NDArray[np.float32]) -> "SurfaceSample":
        """Rebuild a sample from the buffer written by ``pack_sample``."""
        hit = packed[2] > 0.5
        has_uv = packed[9] > 0.5
        return cls(
            dist_travelled=float(packed[0]),
            dist_to_surface=float(packed[1]),
            position=packed[3:6].copy() if hit else None,
            normal=packed[6:9].copy() if hit else None,
            uv=packed[10:12].copy() if hit and has_uv else None,
            material=int(round(float(packed[12]))),
        )
