import logging
import math
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from facesync.core.base_renderer import BaseSceneRenderer
from facesync.core.orbit_controls import OrbitControls
from facesync.core.types import ProxyTransform
from facesync.utils.ui.visualization import Visualizer

log = logging.getLogger(__name__)

DEFAULT_EYE = (0.0, 2.0, 5.0)
LOOK_AT = (0.0, 1.5, 0.0)

HEAD_AXIS_LENGTH = 0.8
TOOL_AXIS_LENGTH = 0.5


def _pt(uv: np.ndarray) -> Tuple[int, int]:
    return int(uv[0]), int(uv[1])


def euler_xyz_matrix(rotation_deg: Sequence[float]) -> np.ndarray:
    """Intrinsic XYZ Euler angles (degrees) -> rotation matrix, R = Rx @ Ry @ Rz."""
    x, y, z = (math.radians(float(a)) for a in rotation_deg)
    cx, sx = math.cos(x), math.sin(x)
    cy, sy = math.cos(y), math.sin(y)
    cz, sz = math.cos(z), math.sin(z)
    rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return rx @ ry @ rz


def look_at(eye: np.ndarray, target: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """World -> camera (x right, y down, z forward). Returns (R, t)."""
    forward = target - eye
    forward = forward / np.linalg.norm(forward)
    right = np.cross(forward, np.array([0.0, 1.0, 0.0]))
    norm = np.linalg.norm(right)
    right = right / norm if norm > 1e-9 else np.array([1.0, 0.0, 0.0])
    down = np.cross(forward, right)
    R = np.vstack([right, down, forward])
    return R, -R @ eye


class OpenCVSceneRenderer(BaseSceneRenderer):
    """
    Wireframe preview of the proxies: a ground grid plus an axis triad per
    proxy, drawn into an OpenCV window.
    """

    def __init__(self, window_name: str, size: Tuple[int, int] = (800, 600), fov_deg: float = 60.0, headless: bool = False):
        self.window_name = window_name
        self.fov_deg = float(fov_deg)
        self.headless = headless
        self.visualizer = Visualizer()
        self.hud_lines: Sequence[str] = ()

        self._canvas: Optional[np.ndarray] = None
        self.resize(*size)

    def resize(self, width: int, height: int) -> None:
        width, height = max(1, int(width)), max(1, int(height))
        self._canvas = np.zeros((height, width, 3), dtype=np.uint8)
        self._focal = (height / 2.0) / math.tan(math.radians(self.fov_deg) / 2.0)
        log.debug(f"Scene canvas {width}x{height}")

    @property
    def canvas(self) -> Optional[np.ndarray]:
        return self._canvas

    def _project(self, points: np.ndarray, R: np.ndarray, t: np.ndarray) -> Optional[np.ndarray]:
        cam = points @ R.T + t
        if np.any(cam[:, 2] <= 0.1):
            return None
        h, w = self._canvas.shape[:2]
        uv = cam[:, :2] / cam[:, 2:3] * self._focal + np.array([w / 2.0, h / 2.0])
        return uv.astype(np.int32)

    def _draw_grid(self, R: np.ndarray, t: np.ndarray) -> None:
        # 10 x 10 ground grid at y = 0
        for i in np.linspace(-5.0, 5.0, 11):
            for a, b in (((i, 0, -5), (i, 0, 5)), ((-5, 0, i), (5, 0, i))):
                uv = self._project(np.array([a, b], dtype=np.float64), R, t)
                if uv is not None:
                    cv2.line(self._canvas, _pt(uv[0]), _pt(uv[1]), self.visualizer.COLOR_GREY, 1, cv2.LINE_AA)

    def _draw_proxy(self, proxy: ProxyTransform, length: float, label: str, R: np.ndarray, t: np.ndarray) -> None:
        basis = euler_xyz_matrix(proxy.rotation) * length
        pts = np.vstack([proxy.position, proxy.position + basis.T])
        uv = self._project(pts, R, t)
        if uv is None:
            return
        colors = (self.visualizer.COLOR_RED, self.visualizer.COLOR_GREEN, self.visualizer.COLOR_BLUE)
        for axis, color in enumerate(colors, start=1):
            cv2.line(self._canvas, _pt(uv[0]), _pt(uv[axis]), color, 2, cv2.LINE_AA)
        cv2.circle(self._canvas, _pt(uv[0]), 4, self.visualizer.COLOR_WHITE, -1)
        cv2.putText(self._canvas, label, (int(uv[0][0]) + 6, int(uv[0][1]) - 6),
                    self.visualizer.FONT, 0.5, self.visualizer.COLOR_WHITE, 1, cv2.LINE_AA)

    def render(self, head: ProxyTransform, tool: ProxyTransform, controls: Optional[OrbitControls] = None) -> None:
        if self._canvas is None:
            return

        if controls is not None:
            eye, target = controls.camera_position(), controls.target
        else:
            eye, target = np.array(DEFAULT_EYE), np.array(LOOK_AT)
        R, t = look_at(eye, target)

        self._canvas[:] = 0
        self._draw_grid(R, t)
        self._draw_proxy(head, HEAD_AXIS_LENGTH, "head", R, t)
        self._draw_proxy(tool, TOOL_AXIS_LENGTH, "tool", R, t)

        lines = [
            f"Head P:{head.rotation[0]:6.1f} Y:{head.rotation[1]:6.1f} R:{head.rotation[2]:6.1f}",
            f"Tool ({tool.position[0]:.2f}, {tool.position[1]:.2f}, {tool.position[2]:.2f})",
        ]
        if not head.tracking:
            lines.append("Waiting for face...")
        self.visualizer.put_hud(self._canvas, list(lines) + list(self.hud_lines))

        if not self.headless:
            cv2.imshow(self.window_name, self._canvas)

    def close(self) -> None:
        if self._canvas is None:
            return
        self._canvas = None
        log.info("Scene renderer closed")
