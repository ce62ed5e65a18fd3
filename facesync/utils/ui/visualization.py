from typing import Any, Optional, Sequence, Tuple

import cv2
import mediapipe as mp
import numpy as np

from facesync.core.types import Pose

# Plain face mesh has 468 points; refine_landmarks adds 10 iris points
IRIS_MIN_LANDMARKS = 468


class Visualizer:
    """
    Drawing helpers for the preview windows. Frames are BGR.
    """

    def __init__(self):
        self.FONT = cv2.FONT_HERSHEY_SIMPLEX

        self.COLOR_YELLOW = (0, 255, 255)
        self.COLOR_GREEN = (0, 255, 0)
        self.COLOR_WHITE = (255, 255, 255)
        self.COLOR_BLACK = (0, 0, 0)
        self.COLOR_RED = (0, 0, 255)
        self.COLOR_BLUE = (255, 0, 0)
        self.COLOR_GREY = (68, 68, 68)

    def put_hud(self, image: np.ndarray, lines: Sequence[str], origin: Tuple[int, int] = (10, 22)) -> None:
        """Outlined text block, readable on any background."""
        x, y = origin
        for line in lines:
            cv2.putText(image, line, (x, y), self.FONT, 0.6, self.COLOR_BLACK, 3, cv2.LINE_AA)
            cv2.putText(image, line, (x, y), self.FONT, 0.6, self.COLOR_WHITE, 1, cv2.LINE_AA)
            y += 22

    def draw_pose_points(self, image: np.ndarray, image_points: np.ndarray) -> None:
        """Marks the landmarks used for the pose solve."""
        for x, y in np.asarray(image_points, dtype=np.float64).reshape(-1, 2):
            cv2.circle(image, (int(x), int(y)), 3, self.COLOR_GREEN, -1)

    def draw_face_mesh(self, image: np.ndarray, face_landmarks: Any, tesselation: bool = True) -> None:
        """
        MediaPipe mesh overlay: tesselation wireframe plus the eye, eyebrow,
        face oval and lip contours. Irises only with refined (478 point) landmarks.
        """
        mp_drawing = mp.solutions.drawing_utils
        mp_styles = mp.solutions.drawing_styles
        mp_face_mesh = mp.solutions.face_mesh

        layers = [(mp_face_mesh.FACEMESH_CONTOURS, mp_styles.get_default_face_mesh_contours_style())]
        if tesselation:
            layers.insert(0, (mp_face_mesh.FACEMESH_TESSELATION, mp_styles.get_default_face_mesh_tesselation_style()))
        if len(face_landmarks.landmark) > IRIS_MIN_LANDMARKS:
            layers.append((mp_face_mesh.FACEMESH_IRISES, mp_styles.get_default_face_mesh_iris_connections_style()))

        for connections, style in layers:
            mp_drawing.draw_landmarks(
                image=image,
                landmark_list=face_landmarks,
                connections=connections,
                landmark_drawing_spec=None,
                connection_drawing_spec=style,
            )

    def draw_no_face_text(self, image: np.ndarray) -> None:
        h, w = image.shape[:2]
        text = "NO FACE DETECTED"
        (text_width, text_height), _ = cv2.getTextSize(text, self.FONT, 1.0, 2)
        cv2.putText(image, text, ((w - text_width) // 2, (h + text_height) // 2),
                    self.FONT, 1.0, self.COLOR_RED, 2)

    def draw_pose_hud(self, image: np.ndarray, pose: Optional[Pose], fps: float) -> None:
        lines = [f"FPS: {fps:.1f}"]
        if pose is not None:
            lines += [
                f"Pitch: {pose.pitch:7.1f}",
                f"Yaw:   {pose.yaw:7.1f}",
                f"Roll:  {pose.roll:7.1f}",
            ]
        self.put_hud(image, lines)
