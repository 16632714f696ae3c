"""Demo scene configurations.

Factory functions returning ready-to-trace (scene, camera) pairs:

    create_sphere_scene: a normal-shaded sphere floating over a reflective
        checkered ground plane, lit by one point light high above
    create_box_scene: a normal-shaded box in front of a camera at the origin

The coordinate system is y-up; cameras look toward +z.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.integrator import trace
    >>> from spheretrace.scene.demo import create_sphere_scene
    >>>
    >>> scene, camera = create_sphere_scene()
    >>> trace(camera, scene).save_as_ppm("sphere.ppm")
"""

from dataclasses import dataclass

import numpy as np

from spheretrace.camera.pinhole import Pinhole, Sensor
from spheretrace.scene.primitives import PrimitiveScene

# =============================================================================
# Sphere Scene Parameters
# =============================================================================


@dataclass
class SphereSceneParams:
    """Parameters for configuring the sphere demo scene.

    Attributes:
        rows: Sensor rows.
        cols: Sensor columns.
        sphere_radius: Radius of the sphere at the origin.
        ground_height: Height of the ground plane.
        light_position: Position of the point light.
        ground_colors: The two checker colors of the ground.
        ground_scale: Checker cell size on the ground.
        ground_attenuation: Fraction of power the ground absorbs, the rest is
            reflected.
        camera_distance: Distance of the pinhole from the origin along -z.
    """

    rows: int = 256
    cols: int = 256
    sphere_radius: float = 2.5
    ground_height: float = -10.0
    light_position: tuple[float, float, float] = (0.0, 100.0, 10.0)
    ground_colors: tuple[tuple[float, float, float], tuple[float, float, float]] = (
        (0.9, 0.9, 0.9),
        (0.2, 0.2, 0.2),
    )
    ground_scale: float = 5.0
    ground_attenuation: float = 0.7
    camera_distance: float = 40.0


# Sensor half size and focal length of the demo pinhole
SENSOR_HALF_SIZE = 0.001
FOCAL_LENGTH = 0.01


def _demo_sensor(rows: int, cols: int) -> Sensor:
    return Sensor(
        corners=((-SENSOR_HALF_SIZE, SENSOR_HALF_SIZE, 0.0), (SENSOR_HALF_SIZE, -SENSOR_HALF_SIZE, 0.0)),
        rows=rows,
        cols=cols,
    )


def create_sphere_scene(params: SphereSceneParams | None = None) -> tuple[PrimitiveScene, Pinhole]:
    """Create the sphere-over-ground scene.

    Args:
        params: Scene parameters, defaults when omitted.

    Returns:
        Tuple of (scene, camera).
    """
    if params is None:
        params = SphereSceneParams()

    scene = PrimitiveScene()
    ground = scene.materials.add_checker(
        params.ground_colors[0],
        params.ground_colors[1],
        scale=params.ground_scale,
        attenuation=params.ground_attenuation,
    )
    scene.add_sphere((0.0, 0.0, 0.0), params.sphere_radius)
    scene.add_plane((0.0, 1.0, 0.0), params.ground_height, material=ground)
    scene.add_light(params.light_position)

    camera = Pinhole(FOCAL_LENGTH, _demo_sensor(params.rows, params.cols))
    T = np.eye(4)
    T[2, 3] = -params.camera_distance
    camera.set_transform(T)

    return scene, camera


def create_box_scene(rows: int = 128, cols: int = 128) -> tuple[PrimitiveScene, Pinhole]:
    """Create a box of half extents (1, 2, 3) at (0, 0, 10), camera at the origin.

    Returns:
        Tuple of (scene, camera).
    """
    scene = PrimitiveScene()
    scene.add_box((0.0, 0.0, 10.0), (1.0, 2.0, 3.0))
    scene.add_light((0.0, 100.0, 0.0))

    camera = Pinhole(FOCAL_LENGTH, _demo_sensor(rows, cols))
    return scene, camera
