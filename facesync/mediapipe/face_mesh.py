import logging
from typing import Any, Dict

import mediapipe as mp
import numpy as np

from facesync.utils.exceptions import ResourceInitFailure

log = logging.getLogger(__name__)


class FaceMeshModel:
    """
    Wrapper for the MediaPipe Face Mesh solution.
    Only the first face is used downstream, so max_num_faces defaults to 1.
    """

    def __init__(
        self,
        static_image_mode: bool = False,
        max_num_faces: int = 1,
        refine_landmarks: bool = True,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        try:
            self._model = mp.solutions.face_mesh.FaceMesh(
                static_image_mode=static_image_mode,
                max_num_faces=max_num_faces,
                refine_landmarks=refine_landmarks,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except Exception as e:
            raise ResourceInitFailure(f"Could not initialize face tracking model: {e}") from e
        self._closed = False
        log.info(
            f"FaceMeshModel ready (faces={max_num_faces}, refine={refine_landmarks}, "
            f"det={min_detection_confidence}, track={min_tracking_confidence})"
        )

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "FaceMeshModel":
        return cls(
            max_num_faces=cfg["max_num_faces"],
            refine_landmarks=cfg["refine_landmarks"],
            min_detection_confidence=cfg["min_detection_confidence"],
            min_tracking_confidence=cfg["min_tracking_confidence"],
        )

    def process(self, image_rgb: np.ndarray):
        # MediaPipe FaceMesh expects RGB input
        return self._model.process(image_rgb)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._model.close()
