import logging
from typing import Any, Optional, Sequence

import numpy as np

log = logging.getLogger(__name__)

# Which MediaPipe landmarks feed the head pose solve
FACE_POINTS = (1, 33, 263, 61, 291, 199)
# 1: Nose tip, 33: Left eye outer corner, 263: Right eye outer corner
# 61: Left mouth corner, 291: Right mouth corner, 199: Chin


def first_face_landmarks(results: Any) -> Optional[Any]:
    """Landmarks of the first detected face, or None. Extra faces are ignored."""
    faces = getattr(results, "multi_face_landmarks", None) or []
    if not faces:
        return None
    return faces[0]


def _landmark_xy(landmarks: Any) -> Optional[np.ndarray]:
    # MediaPipe NormalizedLandmarkList
    points = getattr(landmarks, "landmark", landmarks)
    if points is None:
        return None

    if isinstance(points, np.ndarray):
        if points.ndim != 2 or points.shape[0] == 0 or points.shape[1] < 2:
            return None
        return points[:, :2].astype(np.float64)

    if len(points) == 0:
        return None

    first = points[0]
    if hasattr(first, "x"):
        return np.array([(p.x, p.y) for p in points], dtype=np.float64)
    return np.array([(p[0], p[1]) for p in points], dtype=np.float64)


def select_image_points(
    landmarks: Any,
    width: int,
    height: int,
    indices: Sequence[int] = FACE_POINTS,
) -> np.ndarray:
    """
    Pick the pose landmarks and convert them to pixel coordinates.

    Returns a flat array [x0, y0, x1, y1, ...] in index order, or an empty
    array when there is nothing usable (treated as "no face").
    """
    xy = _landmark_xy(landmarks)
    if xy is None:
        return np.empty(0, dtype=np.float64)

    if max(indices) >= len(xy):
        log.debug(f"Landmark list too short ({len(xy)}) for indices {tuple(indices)}")
        return np.empty(0, dtype=np.float64)

    subset = xy[list(indices)]
    subset[:, 0] *= float(width)
    subset[:, 1] *= float(height)
    return subset.reshape(-1)
