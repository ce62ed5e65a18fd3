import logging
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from facesync.utils.exceptions import ResourceInitFailure

log = logging.getLogger(__name__)


class Camera:
    """
    OpenCV capture wrapper. The requested resolution is negotiated with the
    driver; width/height report what was actually granted.
    """

    def __init__(self, source: Union[int, str] = 0, resolution: Tuple[int, int] = (640, 480)):
        self.source = source
        self._cap = cv2.VideoCapture(source)
        if not self._cap.isOpened():
            self._cap.release()
            raise ResourceInitFailure(
                f"Could not open camera '{source}'. Please make sure camera permissions are granted."
            )

        req_w, req_h = resolution
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, req_w)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, req_h)
        self.width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or req_w
        self.height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or req_h
        self.ready = True
        log.info(f"Camera '{source}' opened at {self.width}x{self.height} (requested {req_w}x{req_h})")

    def read(self, color: str = "bgr") -> Optional[np.ndarray]:
        if not self.ready:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        if color == "rgb":
            return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        return frame

    def release(self) -> None:
        if not self.ready:
            return
        self.ready = False
        self._cap.release()
        log.info("Camera released")
