"""Camera module for view and ray generation.

Components:
    pinhole: Sensor geometry and the Pinhole camera model

Camera responsibilities:
    - Transform (u, v) sensor coordinates to world-space rays
    - Support look-at positioning with an up vector
    - Compute the field of view from sensor size and focal length

Sensor coordinates:
    u in [0, 1]: from corners[0] to corners[1] along x
    v in [0, 1]: from corners[0] to corners[1] along y
"""

from .pinhole import Pinhole, Sensor

__all__ = [
    "Pinhole",
    "Sensor",
]
