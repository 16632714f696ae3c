"""Pinhole camera with a physical sensor.

The camera is described the way a real pinhole camera is: a rectangular sensor
lying in the camera-local z = 0 plane, and a pinhole at distance focal_length
in front of it. A ray for sensor coordinates (u, v) leaves the pinhole in the
direction opposite to the sensor point, so the image is not flipped when
pixels are read with (1 - u, 1 - v).

Two 4x4 transforms place things in the world:
    T_sensor: sensor-local to camera-local (identity for a centered sensor)
    T:        camera-to-world. Its translation is the pinhole position; the
              transpose of its rotation maps camera directions to world
              directions, so its rows are the camera's right, up and forward
              axes.

Camera parameters live in Taichi fields so the camera can be passed to kernels
as a template argument and ``ray`` can be called per pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> sensor = Sensor(corners=((-1.0, 1.0, 0.0), (1.0, -1.0, 0.0)), rows=64, cols=64)
    >>> camera = Pinhole(focal_length=1.0, sensor=sensor)
    >>> origin, direction = camera.generate_ray(0.5, 0.5)
    >>> direction
    array([0., 0., 1.], dtype=float32)
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import Ray, make_ray, rotate_transposed, transform_point, vec3

logger = logging.getLogger(__name__)


# =============================================================================
# Sensor
# =============================================================================


@dataclass(frozen=True)
class Sensor:
    """A rectangular sensor in the camera-local z = 0 plane.

    Attributes:
        corners: Two opposite corners (x, y, z). corners[0] is hit at
            (u, v) = (0, 0), corners[1] at (1, 1).
        rows: Vertical resolution in pixels.
        cols: Horizontal resolution in pixels.
    """

    corners: tuple[tuple[float, float, float], tuple[float, float, float]]
    rows: int
    cols: int

    def __post_init__(self) -> None:
        if self.rows <= 0 or self.cols <= 0:
            raise ValueError(f"Sensor resolution must be positive, got {self.rows}x{self.cols}")
        if len(self.corners) != 2:
            raise ValueError("Sensor needs exactly two corners")
        (x0, y0, _), (x1, y1, _) = self.corners
        if x0 == x1 or y0 == y1:
            raise ValueError(f"Sensor corners span no area: {self.corners}")

    @property
    def half_width(self) -> float:
        return abs(self.corners[1][0] - self.corners[0][0]) / 2.0

    @property
    def half_height(self) -> float:
        return abs(self.corners[1][1] - self.corners[0][1]) / 2.0

    def plane_point(self, u: float, v: float) -> npt.NDArray[np.float64]:
        """Point on the sensor for coordinates (u, v) in [0, 1]^2."""
        assert 0.0 <= u <= 1.0 and 0.0 <= v <= 1.0, f"Sensor coordinates out of range: ({u}, {v})"
        (x0, y0, _), (x1, y1, _) = self.corners
        return np.array([x0 + u * (x1 - x0), y0 + v * (y1 - y0), 0.0])


# =============================================================================
# Pinhole camera
# =============================================================================


@ti.data_oriented
class Pinhole:
    """Pinhole camera generating primary rays.

    Attributes:
        sensor: The Sensor, also defining the output resolution.
        focal_length: Distance between the sensor plane and the pinhole.
        corners: The sensor corners in a Taichi field.
        T_sensor: Sensor-to-camera transform.
        T: Camera-to-world transform.
    """

    def __init__(
        self,
        focal_length: float,
        sensor: Sensor,
        T_sensor: npt.ArrayLike | None = None,
    ) -> None:
        if focal_length <= 0.0:
            raise ValueError(f"Focal length must be positive, got {focal_length}")
        self.sensor = sensor
        self._focal_length = float(focal_length)

        self.focal_length = ti.field(dtype=ti.f32, shape=())
        self.corners = ti.Vector.field(3, dtype=ti.f32, shape=2)
        self.T_sensor = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
        self.T = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())

        self.focal_length[None] = focal_length
        for i, corner in enumerate(sensor.corners):
            self.corners[i] = [float(c) for c in corner]
        self.T_sensor.from_numpy(_as_transform(np.eye(4) if T_sensor is None else T_sensor))
        self.T.from_numpy(_as_transform(np.eye(4)))

    @property
    def rows(self) -> int:
        return self.sensor.rows

    @property
    def cols(self) -> int:
        return self.sensor.cols

    @property
    def transform(self) -> npt.NDArray[np.float32]:
        """The camera-to-world transform."""
        return self.T.to_numpy()

    def set_transform(self, T: npt.ArrayLike) -> None:
        """Replace the camera-to-world transform.

        Args:
            T: A 4x4 affine transform. Rows 0-2 of the rotation block are the
                camera's right, up and forward axes in world space; column 3 is
                the pinhole position.
        """
        self.T.from_numpy(_as_transform(T))

    def look_at(
        self,
        eye: tuple[float, float, float],
        target: tuple[float, float, float],
        up: tuple[float, float, float] = (0.0, 1.0, 0.0),
    ) -> None:
        """Place the pinhole at eye, looking toward target.

        Raises:
            ValueError: If eye and target coincide or up is parallel to the
                viewing direction.
        """
        eye_v = np.asarray(eye, dtype=np.float64)
        forward = np.asarray(target, dtype=np.float64) - eye_v
        if np.linalg.norm(forward) == 0.0:
            raise ValueError("look_at target must differ from eye")
        forward /= np.linalg.norm(forward)
        right = np.cross(np.asarray(up, dtype=np.float64), forward)
        if np.linalg.norm(right) < 1e-8:
            raise ValueError("look_at up vector is parallel to the view direction")
        right /= np.linalg.norm(right)
        true_up = np.cross(forward, right)

        T = np.eye(4)
        T[0, :3] = right
        T[1, :3] = true_up
        T[2, :3] = forward
        T[:3, 3] = eye_v
        self.set_transform(T)
        logger.debug("Camera at %s looking at %s", tuple(eye), tuple(target))

    def field_of_view(self) -> tuple[float, float]:
        """Horizontal and vertical field of view, in radians."""
        return (
            2.0 * math.atan(self.sensor.half_width / self._focal_length),
            2.0 * math.atan(self.sensor.half_height / self._focal_length),
        )

    @ti.func
    def ray(self, u: ti.f32, v: ti.f32) -> Ray:
        """Generate the primary ray for sensor coordinates (u, v).

        Args:
            u: Horizontal sensor coordinate in [0, 1].
            v: Vertical sensor coordinate in [0, 1].

        Returns:
            A ray leaving the pinhole with a unit direction.
        """
        assert 0.0 <= u <= 1.0 and 0.0 <= v <= 1.0, "Sensor coordinates out of range"

        c0 = self.corners[0]
        c1 = self.corners[1]
        pp_0 = vec3(c0.x + u * (c1.x - c0.x), c0.y + v * (c1.y - c0.y), 0.0)
        # Point on the sensor in camera coordinates, pinhole at the origin
        pp_w = transform_point(self.T_sensor[None], pp_0) + vec3(0.0, 0.0, -self.focal_length[None])

        T = self.T[None]
        origin = transform_point(T, vec3(0.0, 0.0, 0.0))
        direction = rotate_transposed(T, tm.normalize(-pp_w))
        return make_ray(origin, direction)

    @ti.kernel
    def _generate_ray_kernel(self, u: ti.f32, v: ti.f32, out: ti.types.ndarray(dtype=ti.f32, ndim=2)):
        ray = self.ray(u, v)
        for i in ti.static(range(3)):
            out[0, i] = ray.origin[i]
            out[1, i] = ray.direction[i]

    def generate_ray(self, u: float, v: float) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32]]:
        """Generate a primary ray from Python scope.

        Args:
            u: Horizontal sensor coordinate in [0, 1].
            v: Vertical sensor coordinate in [0, 1].

        Returns:
            Tuple of (origin, direction) arrays.
        """
        assert 0.0 <= u <= 1.0 and 0.0 <= v <= 1.0, f"Sensor coordinates out of range: ({u}, {v})"
        out = np.zeros((2, 3), dtype=np.float32)
        self._generate_ray_kernel(u, v, out)
        return out[0].copy(), out[1].copy()


def _as_transform(T: npt.ArrayLike) -> npt.NDArray[np.float32]:
    matrix = np.asarray(T, dtype=np.float32)
    if matrix.shape != (4, 4):
        raise ValueError(f"Transform must be 4x4, got shape {matrix.shape}")
    return matrix
