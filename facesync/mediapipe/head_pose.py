import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from facesync.core.types import Pose
from facesync.mediapipe.landmarks import FACE_POINTS, first_face_landmarks, select_image_points
from facesync.utils.exceptions import ConfigurationError, PoseSolveError

log = logging.getLogger(__name__)


# Canonical face geometry for FACE_POINTS, same order
MODEL_POINTS = np.array([
    (0.0, -1.126865, 7.475604),          # Nose tip
    (-4.445859, 2.663991, 3.173422),     # Left eye outer corner
    (4.445859, 2.663991, 3.173422),      # Right eye outer corner
    (-2.456206, -4.342621, 4.283884),    # Left mouth corner
    (2.456206, -4.342621, 4.283884),     # Right mouth corner
    (0.0, -9.403378, 4.264492),          # Chin
], dtype=np.float64)

# focal_length = canvas height * NORMALIZED_FOCAL_Y
NORMALIZED_FOCAL_Y = 1.28

# Pre-characterized webcam lens (k1, k2, p1, p2)
DISTORTION_COEFFS = (0.1318020374, -0.1550007612, -0.0071350401, -0.0096747708)

SINGULAR_EPS = 1e-6

# Empirical recentering of raw pitch (radians) for MODEL_POINTS
PITCH_BIAS = 3.0


@dataclass(frozen=True)
class CameraIntrinsics:
    focal_length: float
    principal_point_x: float
    principal_point_y: float

    @classmethod
    def from_canvas(cls, width: int, height: int, normalized_focal_y: float = NORMALIZED_FOCAL_Y) -> "CameraIntrinsics":
        return cls(
            focal_length=float(height) * float(normalized_focal_y),
            principal_point_x=float(width) / 2.0,
            principal_point_y=float(height) / 2.0,
        )

    def matrix(self) -> np.ndarray:
        f = self.focal_length
        return np.array([
            [f, 0.0, self.principal_point_x],
            [0.0, f, self.principal_point_y],
            [0.0, 0.0, 1.0],
        ], dtype=np.float64)


@dataclass(frozen=True)
class PnPSolution:
    rotation_matrix: np.ndarray   # (3, 3)
    translation: np.ndarray       # (3,)
    rotation_vector: np.ndarray   # (3,)


# ----------------------------------------------------------------------------
# Numeric backend
# ----------------------------------------------------------------------------

class SolveSession(ABC):
    """
    Scratch space for a single solve. Every buffer handed out by a session
    belongs to it and is released when the session exits.
    """

    def __enter__(self) -> "SolveSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    @abstractmethod
    def solve_pnp(
        self,
        model_points: np.ndarray,
        image_points: np.ndarray,
        camera_matrix: np.ndarray,
        dist_coeffs: np.ndarray,
    ) -> Tuple[bool, np.ndarray, np.ndarray]:
        """Iterative PnP without an extrinsic guess. Returns (ok, rvec, tvec)."""
        pass

    @abstractmethod
    def rodrigues(self, rvec: np.ndarray) -> np.ndarray:
        """Rotation vector -> 3x3 rotation matrix."""
        pass

    @abstractmethod
    def release(self) -> None:
        pass


class PnPBackend(ABC):
    """A PnP-capable numeric backend."""

    @abstractmethod
    def session(self) -> SolveSession:
        pass


class OpenCVSolveSession(SolveSession):
    # numpy frees these on its own; the session still scopes every buffer to
    # one solve so backends holding native memory can slot in unchanged.
    def __init__(self):
        self._buffers: List[np.ndarray] = []
        self.released = False

    def _acquire(self, buf: np.ndarray) -> np.ndarray:
        self._buffers.append(buf)
        return buf

    @property
    def live_buffers(self) -> int:
        return len(self._buffers)

    def solve_pnp(self, model_points, image_points, camera_matrix, dist_coeffs):
        object_pts = self._acquire(np.ascontiguousarray(model_points, dtype=np.float64).reshape(-1, 3))
        image_pts = self._acquire(np.ascontiguousarray(image_points, dtype=np.float64).reshape(-1, 2))
        try:
            ok, rvec, tvec = cv2.solvePnP(
                object_pts, image_pts,
                camera_matrix, dist_coeffs,
                flags=cv2.SOLVEPNP_ITERATIVE,
            )
        except cv2.error as e:
            raise PoseSolveError(f"solvePnP failed: {e}") from e
        return bool(ok), self._acquire(rvec), self._acquire(tvec)

    def rodrigues(self, rvec):
        try:
            rmat, jacobian = cv2.Rodrigues(rvec)
        except cv2.error as e:
            raise PoseSolveError(f"Rodrigues failed: {e}") from e
        self._acquire(jacobian)
        return self._acquire(rmat)

    def release(self) -> None:
        self._buffers.clear()
        self.released = True


class OpenCVPnPBackend(PnPBackend):
    def session(self) -> OpenCVSolveSession:
        return OpenCVSolveSession()


# ----------------------------------------------------------------------------
# Pose solver
# ----------------------------------------------------------------------------

class PoseSolver:
    """
    Solves head rotation/translation from the six observed landmarks.
    Each call is independent: only the intrinsics and reference model persist.
    """

    def __init__(
        self,
        backend: PnPBackend,
        model_points: np.ndarray = MODEL_POINTS,
        distortion: Sequence[float] = DISTORTION_COEFFS,
        normalized_focal_y: float = NORMALIZED_FOCAL_Y,
    ):
        model = np.asarray(model_points, dtype=np.float64)
        if model.shape != (len(FACE_POINTS), 3):
            raise ConfigurationError(f"model_points must be shaped ({len(FACE_POINTS)}, 3), got {model.shape}")
        dist = np.asarray(distortion, dtype=np.float64).reshape(-1, 1)
        if dist.shape[0] != 4:
            raise ConfigurationError(f"distortion must have 4 coefficients, got {dist.shape[0]}")
        if normalized_focal_y <= 0:
            raise ConfigurationError(f"normalized_focal_y must be > 0, got {normalized_focal_y}")

        self.backend = backend
        self.model_points = model
        self.dist_coeffs = dist
        self.normalized_focal_y = float(normalized_focal_y)

        self._canvas: Tuple[int, int] = (0, 0)
        self._intrinsics: Optional[CameraIntrinsics] = None
        self._camera_matrix: Optional[np.ndarray] = None

    @property
    def intrinsics(self) -> Optional[CameraIntrinsics]:
        return self._intrinsics

    @property
    def canvas_dimensions(self) -> Tuple[int, int]:
        return self._canvas

    def set_canvas_dimensions(self, width: int, height: int) -> None:
        width, height = int(width), int(height)
        if (width, height) == self._canvas:
            return

        self._canvas = (width, height)
        if width <= 0 or height <= 0:
            self._intrinsics = None
            self._camera_matrix = None
            log.warning(f"Invalid canvas size {width}x{height}; pose solving paused")
            return

        self._intrinsics = CameraIntrinsics.from_canvas(width, height, self.normalized_focal_y)
        self._camera_matrix = self._intrinsics.matrix()
        log.info(
            f"Camera intrinsics for {width}x{height}: f={self._intrinsics.focal_length:.1f}px, "
            f"c=({self._intrinsics.principal_point_x:.1f}, {self._intrinsics.principal_point_y:.1f})"
        )

    def solve(self, image_points: np.ndarray) -> Optional[PnPSolution]:
        if self._camera_matrix is None:
            log.debug("Pose solve skipped: canvas dimensions unknown")
            return None

        pts = np.asarray(image_points, dtype=np.float64).reshape(-1)
        if pts.size != self.model_points.size // 3 * 2:
            log.debug(f"Pose solve skipped: expected {len(self.model_points)} points, got {pts.size // 2}")
            return None

        try:
            with self.backend.session() as session:
                ok, rvec, tvec = session.solve_pnp(
                    self.model_points, pts.reshape(-1, 2),
                    self._camera_matrix, self.dist_coeffs,
                )
                if not ok:
                    log.debug("Pose solve did not converge")
                    return None

                rmat = session.rodrigues(rvec)
                # Copy out before the session releases its buffers
                return PnPSolution(
                    rotation_matrix=np.array(rmat, dtype=np.float64).reshape(3, 3),
                    translation=np.array(tvec, dtype=np.float64).reshape(3),
                    rotation_vector=np.array(rvec, dtype=np.float64).reshape(3),
                )
        except PoseSolveError as e:
            log.debug(f"Pose solve failed: {e}")
            return None


# ----------------------------------------------------------------------------
# Orientation decomposition
# ----------------------------------------------------------------------------

def rotation_matrix_to_euler_angles(R: Any) -> Tuple[float, float, float]:
    """
    Extract (pitch, yaw, roll) in radians from a 3x3 rotation matrix,
    XYZ convention. m is the row-major flattening of R.

    Near gimbal lock (sy < 1e-6) pitch and roll are coupled, so roll is
    pinned to 0 and pitch is read from the second row instead.
    """
    m = np.asarray(R, dtype=np.float64).reshape(-1)
    if m.size != 9:
        raise ValueError(f"Expected a 3x3 matrix, got {m.size} values")

    sy = math.sqrt(m[0] * m[0] + m[3] * m[3])

    if sy >= SINGULAR_EPS:
        pitch = math.atan2(m[7], m[8])
        yaw = math.atan2(-m[6], sy)
        roll = math.atan2(m[3], m[0])
    else:
        pitch = math.atan2(-m[5], m[4])
        yaw = math.atan2(-m[6], sy)
        roll = 0.0

    return pitch, yaw, roll


def tune_pitch(pitch: float) -> float:
    if pitch > 0:
        return (pitch - PITCH_BIAS) / 2
    return (pitch + PITCH_BIAS) / 2


def decompose_rotation(R: Any) -> Tuple[float, float, float]:
    """Rotation matrix -> (tuned pitch, yaw, roll) in degrees."""
    pitch, yaw, roll = rotation_matrix_to_euler_angles(R)
    return (
        math.degrees(tune_pitch(pitch)),
        math.degrees(yaw),
        math.degrees(roll),
    )


# ----------------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------------

class HeadPoseCalculator:
    """
    Landmarks -> Pose. Caller-owned; holds the solver (and through it the
    intrinsics) and nothing else between frames.
    """

    def __init__(self, solver: PoseSolver, indices: Sequence[int] = FACE_POINTS, debug: bool = False):
        self.solver = solver
        self.indices = tuple(indices)
        self.debug = debug
        log.info(f"HeadPoseCalculator initialized (landmarks={self.indices})")

    def set_canvas_dimensions(self, width: int, height: int) -> None:
        self.solver.set_canvas_dimensions(width, height)

    def calculate_face_pose(self, results: Any) -> Optional[Pose]:
        """
        Pose of the first detected face, or None when there is no face or
        the solve fails. Never raises.
        """
        try:
            landmarks = first_face_landmarks(results)
            if landmarks is None:
                if self.debug:
                    log.debug("No face landmarks detected")
                return None
            return self.calculate_from_landmarks(landmarks)
        except Exception as e:
            log.error(f"Pose calculation error: {e}")
            return None

    def calculate_from_landmarks(self, landmarks: Any) -> Optional[Pose]:
        width, height = self.solver.canvas_dimensions
        image_points = select_image_points(landmarks, width, height, self.indices)
        if image_points.size == 0:
            return None

        solution = self.solver.solve(image_points)
        if solution is None:
            return None

        rotation = np.array(decompose_rotation(solution.rotation_matrix), dtype=np.float64)
        position = solution.translation
        if not (np.all(np.isfinite(rotation)) and np.all(np.isfinite(position))):
            log.debug("Discarding non-finite pose")
            return None

        pose = Pose(position=position, rotation=rotation)
        if self.debug:
            log.debug(f"Calculated face pose: {pose.to_dict()}")
        return pose
