import logging
from typing import Any, Callable, List, Optional

import cv2

from facesync.core.types import Pose
from facesync.mediapipe.head_pose import HeadPoseCalculator
from facesync.utils.exceptions import ResourceInitFailure

log = logging.getLogger(__name__)

PoseObserver = Callable[[Optional[Pose]], None]


class FaceTrackingSession:
    """
    Frame delivery + landmark detection + pose calculation.

    Holds the last completed pose for the render loop to read. Detection
    results that arrive while the session is inactive are dropped.
    """

    def __init__(
        self,
        camera_factory: Callable[[], Any],
        face_mesh_factory: Callable[[], Any],
        calculator: HeadPoseCalculator,
    ):
        self.camera_factory = camera_factory
        self.face_mesh_factory = face_mesh_factory
        self.calculator = calculator

        self.camera = None
        self.face_mesh = None

        self._active = False
        self._latest_pose: Optional[Pose] = None
        self._observers: List[PoseObserver] = []
        self.frames_processed = 0
        self.last_frame = None
        self.last_results = None

    @property
    def active(self) -> bool:
        return self._active

    def latest_pose(self) -> Optional[Pose]:
        return self._latest_pose

    def add_pose_observer(self, observer: PoseObserver) -> None:
        self._observers.append(observer)

    def remove_pose_observer(self, observer: PoseObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def start(self) -> bool:
        """Acquire camera and detector. Returns False if already running."""
        if self._active:
            log.warning("Tracking session already active; ignoring start()")
            return False
        self._active = True

        try:
            self.camera = self.camera_factory()
            self.face_mesh = self.face_mesh_factory()
        except ResourceInitFailure:
            self._release()
            raise
        except Exception as e:
            self._release()
            raise ResourceInitFailure(f"Could not initialize face tracking: {e}") from e

        log.info("Tracking session started")
        return True

    def stop(self) -> None:
        if not self._active and self.camera is None and self.face_mesh is None:
            return
        self._release()
        log.info(f"Tracking session stopped after {self.frames_processed} frames")

    def _release(self) -> None:
        self._active = False
        self._latest_pose = None
        face_mesh, self.face_mesh = self.face_mesh, None
        camera, self.camera = self.camera, None
        try:
            if face_mesh is not None:
                face_mesh.close()
        finally:
            if camera is not None:
                camera.release()

    def step(self) -> bool:
        """Pull one frame through detection. Returns False if no frame was processed."""
        if not self._active:
            return False

        frame_bgr = self.camera.read(color="bgr")
        if frame_bgr is None:
            return False

        h, w = frame_bgr.shape[:2]
        self.calculator.set_canvas_dimensions(w, h)

        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        try:
            results = self.face_mesh.process(frame_rgb)
        except Exception as e:
            log.error(f"Face mesh processing error, dropping frame: {e}")
            return False
        self.last_frame = frame_bgr
        self.last_results = results
        self.handle_results(results)
        return True

    def handle_results(self, results: Any) -> None:
        """Detection callback: compute the pose synchronously and publish it."""
        if not self._active:
            log.debug("Dropping detection result after teardown")
            return

        pose = self.calculator.calculate_face_pose(results)
        self._latest_pose = pose
        self.frames_processed += 1

        for observer in list(self._observers):
            try:
                observer(pose)
            except Exception as e:
                log.error(f"Pose observer {observer!r} failed: {e}")
