import math
from typing import Sequence

import numpy as np


class OrbitControls:
    """
    Damped orbit/zoom around a fixed target, in spherical coordinates.

    Input is queued by rotate()/zoom() and bled off by update(), which must
    be called once per rendered frame.
    """

    def __init__(
        self,
        target: Sequence[float] = (0.0, 1.5, 0.0),
        distance: float = math.hypot(0.5, 5.0),
        azimuth: float = 0.0,
        polar: float = math.atan2(5.0, 0.5),
        damping_factor: float = 0.05,
        min_distance: float = 3.0,
        max_distance: float = 10.0,
        max_polar_angle: float = math.pi / 2,
    ):
        self.target = np.asarray(target, dtype=np.float64).reshape(3)
        self.damping_factor = float(damping_factor)
        self.min_distance = float(min_distance)
        self.max_distance = float(max_distance)
        self.max_polar_angle = float(max_polar_angle)

        self.azimuth = float(azimuth)
        self.polar = min(max(float(polar), 1e-6), self.max_polar_angle)
        self.distance = min(max(float(distance), self.min_distance), self.max_distance)

        self._d_azimuth = 0.0
        self._d_polar = 0.0
        self._zoom_scale = 1.0

    def rotate(self, d_azimuth: float, d_polar: float) -> None:
        self._d_azimuth += float(d_azimuth)
        self._d_polar += float(d_polar)

    def zoom(self, scale: float) -> None:
        if scale > 0:
            self._zoom_scale *= float(scale)

    def update(self) -> bool:
        """Apply one frame of damped motion. Returns True if the camera moved."""
        k = self.damping_factor
        before = (self.azimuth, self.polar, self.distance)

        self.azimuth += self._d_azimuth * k
        self.polar = min(max(self.polar + self._d_polar * k, 1e-6), self.max_polar_angle)
        step = self._zoom_scale ** k
        self.distance = min(max(self.distance * step, self.min_distance), self.max_distance)

        self._d_azimuth *= 1.0 - k
        self._d_polar *= 1.0 - k
        self._zoom_scale /= step

        return (self.azimuth, self.polar, self.distance) != before

    def camera_position(self) -> np.ndarray:
        sin_p = math.sin(self.polar)
        offset = np.array([
            self.distance * sin_p * math.sin(self.azimuth),
            self.distance * math.cos(self.polar),
            self.distance * sin_p * math.cos(self.azimuth),
        ])
        return self.target + offset
