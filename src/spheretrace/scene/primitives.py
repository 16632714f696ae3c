"""A scene assembled from analytic distance-field primitives.

PrimitiveScene stores spheres, planes and boxes in Taichi fields using a
Structure-of-Arrays layout, one material id per primitive. The scene's
distance is the union (minimum) of all primitive distances; the primitive that
attains the minimum decides the material and the UV at a hit.

UVs:
    sphere: (azimuth, polar angle) mapped to [0, 1]^2
    plane:  coordinates in an orthonormal frame spanning the plane
    box:    none, checker materials fall back to world x/z

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> scene = PrimitiveScene()
    >>> ground = scene.materials.add_checker((1, 1, 1), (0, 0, 0), scale=4.0)
    >>> scene.add_sphere((0.0, 0.0, 0.0), 2.5)
    >>> scene.add_plane((0.0, 1.0, 0.0), -10.0, material=ground)
    >>> scene.add_light((0.0, 100.0, 10.0))
"""

import logging
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import build_onb_from_normal, vec2, vec3
from spheretrace.geometry.sdf import box, plane, sphere, union
from spheretrace.materials.library import MaterialLibrary
from spheretrace.scene.base import Scene

logger = logging.getLogger(__name__)

# Maximum number of primitives of each kind
MAX_SPHERES = 256
MAX_PLANES = 16
MAX_BOXES = 256

# Distance reported by an empty scene
EMPTY_DISTANCE = 1e10


class PrimitiveKind(IntEnum):
    """Kind of the primitive closest to a query point."""

    NONE = 0
    SPHERE = 1
    PLANE = 2
    BOX = 3


@ti.data_oriented
class PrimitiveScene(Scene):
    """Union of spheres, planes and boxes.

    Attributes:
        sphere_centers, sphere_radii, sphere_materials: Sphere storage.
        plane_normals, plane_heights, plane_materials: Plane storage.
        box_centers, box_half_extents, box_materials: Box storage.
        num_spheres, num_planes, num_boxes: Primitive counts.
    """

    def __init__(
        self,
        materials: MaterialLibrary | None = None,
        *,
        max_spheres: int = MAX_SPHERES,
        max_planes: int = MAX_PLANES,
        max_boxes: int = MAX_BOXES,
        **kwargs,
    ) -> None:
        super().__init__(materials, **kwargs)
        self.max_spheres = max_spheres
        self.max_planes = max_planes
        self.max_boxes = max_boxes

        # Sphere storage
        self.sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=max_spheres)
        self.sphere_radii = ti.field(dtype=ti.f32, shape=max_spheres)
        self.sphere_materials = ti.field(dtype=ti.i32, shape=max_spheres)
        self.num_spheres = ti.field(dtype=ti.i32, shape=())

        # Plane storage
        self.plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=max_planes)
        self.plane_heights = ti.field(dtype=ti.f32, shape=max_planes)
        self.plane_materials = ti.field(dtype=ti.i32, shape=max_planes)
        self.num_planes = ti.field(dtype=ti.i32, shape=())

        # Box storage
        self.box_centers = ti.Vector.field(3, dtype=ti.f32, shape=max_boxes)
        self.box_half_extents = ti.Vector.field(3, dtype=ti.f32, shape=max_boxes)
        self.box_materials = ti.field(dtype=ti.i32, shape=max_boxes)
        self.num_boxes = ti.field(dtype=ti.i32, shape=())

    def _material_or_default(self, material: int | None) -> int:
        if material is None:
            return int(self.default_material[None])
        return material

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material: int | None = None,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center of the sphere.
            radius: The radius of the sphere. Must be positive.
            material: Material id, the scene default when omitted.

        Returns:
            The index of the added sphere.

        Raises:
            ValueError: If radius is not positive.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        idx = int(self.num_spheres[None])
        if idx >= self.max_spheres:
            raise RuntimeError(f"Maximum number of spheres ({self.max_spheres}) exceeded")
        self.sphere_centers[idx] = [float(c) for c in center]
        self.sphere_radii[idx] = radius
        self.sphere_materials[idx] = self._material_or_default(material)
        self.num_spheres[None] = idx + 1
        logger.debug("Added sphere %d at %s, radius %.3f", idx, tuple(center), radius)
        return idx

    def add_plane(
        self,
        normal: tuple[float, float, float],
        height: float,
        material: int | None = None,
    ) -> int:
        """Add an infinite plane to the scene.

        Args:
            normal: Plane normal, normalized on insertion.
            height: Offset of the plane along its normal.
            material: Material id, the scene default when omitted.

        Returns:
            The index of the added plane.

        Raises:
            ValueError: If the normal has zero length.
            RuntimeError: If the maximum number of planes is exceeded.
        """
        norm = sum(float(c) ** 2 for c in normal) ** 0.5
        if norm == 0.0:
            raise ValueError("Plane normal must be non-zero")
        idx = int(self.num_planes[None])
        if idx >= self.max_planes:
            raise RuntimeError(f"Maximum number of planes ({self.max_planes}) exceeded")
        self.plane_normals[idx] = [float(c) / norm for c in normal]
        self.plane_heights[idx] = height
        self.plane_materials[idx] = self._material_or_default(material)
        self.num_planes[None] = idx + 1
        logger.debug("Added plane %d with normal %s, height %.3f", idx, tuple(normal), height)
        return idx

    def add_box(
        self,
        center: tuple[float, float, float],
        half_extents: tuple[float, float, float],
        material: int | None = None,
    ) -> int:
        """Add an axis-aligned box to the scene.

        Args:
            center: The center of the box.
            half_extents: Half the box size along each axis. All positive.
            material: Material id, the scene default when omitted.

        Returns:
            The index of the added box.

        Raises:
            ValueError: If any half extent is not positive.
            RuntimeError: If the maximum number of boxes is exceeded.
        """
        if min(half_extents) <= 0.0:
            raise ValueError(f"Box half extents must be positive, got {tuple(half_extents)}")
        idx = int(self.num_boxes[None])
        if idx >= self.max_boxes:
            raise RuntimeError(f"Maximum number of boxes ({self.max_boxes}) exceeded")
        self.box_centers[idx] = [float(c) for c in center]
        self.box_half_extents[idx] = [float(c) for c in half_extents]
        self.box_materials[idx] = self._material_or_default(material)
        self.num_boxes[None] = idx + 1
        logger.debug("Added box %d at %s, half extents %s", idx, tuple(center), tuple(half_extents))
        return idx

    def clear(self) -> None:
        """Remove all primitives. Lights and materials are kept."""
        self.num_spheres[None] = 0
        self.num_planes[None] = 0
        self.num_boxes[None] = 0

    @property
    def primitive_count(self) -> int:
        """Total number of primitives in the scene."""
        return int(self.num_spheres[None] + self.num_planes[None] + self.num_boxes[None])

    # =========================================================================
    # Scene interface
    # =========================================================================

    @ti.func
    def closest(self, p: vec3):
        """Find the primitive nearest to p.

        Returns:
            A tuple (distance, kind, index). An empty scene reports
            EMPTY_DISTANCE and PrimitiveKind.NONE.
        """
        best = EMPTY_DISTANCE
        kind = int(PrimitiveKind.NONE)
        index = -1

        for i in range(self.num_spheres[None]):
            d = sphere(p, self.sphere_centers[i], self.sphere_radii[i])
            if d < best:
                kind = int(PrimitiveKind.SPHERE)
                index = i
            best = union(best, d)

        for i in range(self.num_planes[None]):
            d = plane(p, self.plane_normals[i], self.plane_heights[i])
            if d < best:
                kind = int(PrimitiveKind.PLANE)
                index = i
            best = union(best, d)

        for i in range(self.num_boxes[None]):
            d = box(p, self.box_centers[i], self.box_half_extents[i])
            if d < best:
                kind = int(PrimitiveKind.BOX)
                index = i
            best = union(best, d)

        return best, kind, index

    @ti.func
    def sample_sdf(self, p: vec3) -> ti.f32:
        d, kind, index = self.closest(p)
        return d

    @ti.func
    def surface_material(self, p: vec3) -> ti.i32:
        dist, kind, index = self.closest(p)
        material = self.default_material[None]
        if kind == int(PrimitiveKind.SPHERE):
            material = self.sphere_materials[index]
        elif kind == int(PrimitiveKind.PLANE):
            material = self.plane_materials[index]
        elif kind == int(PrimitiveKind.BOX):
            material = self.box_materials[index]
        return material

    @ti.func
    def surface_uv(self, p: vec3, normal: vec3):
        """Spherical UV for spheres, in-plane coordinates for planes."""
        dist, kind, index = self.closest(p)
        uv = vec2(0.0, 0.0)
        has_uv = 0
        if kind == int(PrimitiveKind.SPHERE):
            # Direction from the center, independent of the numerical normal
            d = tm.normalize(p - self.sphere_centers[index])
            theta = tm.acos(tm.clamp(-d.y, -1.0, 1.0))
            phi = tm.atan2(-d.z, d.x) + tm.pi
            uv = vec2(phi / (2.0 * tm.pi), theta / tm.pi)
            has_uv = 1
        elif kind == int(PrimitiveKind.PLANE):
            tangent, bitangent, plane_normal = build_onb_from_normal(self.plane_normals[index])
            uv = vec2(tm.dot(p, tangent), tm.dot(p, bitangent))
            has_uv = 1
        return uv, has_uv
