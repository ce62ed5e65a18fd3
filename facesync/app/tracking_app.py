import logging
import os
import signal
from typing import Any, Dict, Optional

import cv2
import numpy as np

from facesync.app.scene_renderer import OpenCVSceneRenderer
from facesync.app.scene_window import SceneWindow
from facesync.core.orbit_controls import OrbitControls
from facesync.core.render_loop import RenderLoop
from facesync.core.scene_sync import SceneSynchronizer
from facesync.core.tracking_session import FaceTrackingSession
from facesync.core.types import ToolCommand
from facesync.infrastructure.hardware.camera import Camera
from facesync.mediapipe.face_mesh import FaceMeshModel
from facesync.mediapipe.head_pose import HeadPoseCalculator, OpenCVPnPBackend, PoseSolver
from facesync.mediapipe.landmarks import first_face_landmarks, select_image_points
from facesync.utils.exceptions import ResourceInitFailure
from facesync.utils.ui.metrics_tracker import FpsTracker
from facesync.utils.ui.visualization import Visualizer

log = logging.getLogger(__name__)

CAMERA_WINDOW = "Face Sync - Camera"

POSITION_STEP = 0.1
POSITION_LIMIT = 3.0
ROTATION_STEP = 5.0
ROTATION_LIMIT = 180.0
ZOOM_STEP = 1.25
ORBIT_STEP = 0.3

# key -> (axis, direction); axes are x, y, z
POSITION_KEYS = {
    ord("a"): (0, -1), ord("d"): (0, 1),
    ord("w"): (1, 1), ord("s"): (1, -1),
    ord("r"): (2, 1), ord("f"): (2, -1),
}
# key -> (axis, direction); axes are pitch, yaw, roll
ROTATION_KEYS = {
    ord("i"): (0, 1), ord("k"): (0, -1),
    ord("j"): (1, 1), ord("l"): (1, -1),
    ord("u"): (2, 1), ord("o"): (2, -1),
}
QUIT_KEYS = (27, ord("q"))
MESH_KEY = ord("t")
DEBUG_KEY = ord("v")


def _env_flag(name: str) -> bool:
    return str(os.getenv(name, "0")).strip().lower() in ("1", "true", "yes", "on")


class ToolKeyController:
    """
    Keyboard -> tool command and orbit camera.
    Every change produces a fresh ToolCommand; the synchronizer picks it up
    on its next frame.
    """

    def __init__(self, synchronizer: SceneSynchronizer, controls: Optional[OrbitControls] = None):
        self.synchronizer = synchronizer
        self.controls = controls

    def handle(self, key: int) -> bool:
        """Returns True if the key was consumed."""
        command = self.synchronizer.tool_command

        if key in POSITION_KEYS:
            axis, direction = POSITION_KEYS[key]
            position = command.position.copy()
            position[axis] = np.clip(position[axis] + direction * POSITION_STEP, -POSITION_LIMIT, POSITION_LIMIT)
            self._apply(ToolCommand(position=position, rotation=command.rotation))
            return True

        if key in ROTATION_KEYS:
            axis, direction = ROTATION_KEYS[key]
            # First override starts from wherever the tool currently points
            base = command.rotation if command.rotation is not None else self.synchronizer.tool.rotation
            rotation = np.array(base, dtype=np.float64)
            rotation[axis] = np.clip(rotation[axis] + direction * ROTATION_STEP, -ROTATION_LIMIT, ROTATION_LIMIT)
            self._apply(ToolCommand(position=command.position, rotation=rotation))
            return True

        if key == ord("m"):
            if command.rotation is not None:
                self._apply(ToolCommand(position=command.position))
                log.info("Tool rotation override cleared; tool follows head")
            return True

        if self.controls is None:
            return False

        if key == ord("["):
            self.controls.zoom(1.0 / ZOOM_STEP)
        elif key == ord("]"):
            self.controls.zoom(ZOOM_STEP)
        elif key == ord(","):
            self.controls.rotate(-ORBIT_STEP, 0.0)
        elif key == ord("."):
            self.controls.rotate(ORBIT_STEP, 0.0)
        else:
            return False
        return True

    def _apply(self, command: ToolCommand) -> None:
        self.synchronizer.set_tool_command(command)
        log.debug(
            f"Tool command: position={command.position.round(2).tolist()}, "
            f"rotation={None if command.rotation is None else command.rotation.round(1).tolist()}"
        )


class TrackingApp:
    """
    Wires camera -> face mesh -> head pose -> scene proxies -> preview.

    Single thread: every iteration pulls one camera frame through detection,
    then pumps the scene window, which runs the render loop's frame.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.headless = _env_flag("FS_HEADLESS")
        self.show_camera = config["render"]["show_camera"] and not self.headless
        self.show_mesh = config["render"]["show_mesh"]

        pose_cfg = config["pose"]
        solver = PoseSolver(
            OpenCVPnPBackend(),
            distortion=pose_cfg["distortion"],
            normalized_focal_y=pose_cfg["normalized_focal_y"],
        )
        self.calculator = HeadPoseCalculator(solver, debug=pose_cfg["debug"])
        if pose_cfg["debug"]:
            logging.getLogger("facesync").setLevel(logging.DEBUG)

        cam_cfg = config["camera"]
        self.session = FaceTrackingSession(
            camera_factory=lambda: Camera(cam_cfg["source"], (cam_cfg["width"], cam_cfg["height"])),
            face_mesh_factory=lambda: FaceMeshModel.from_config(config["face_mesh"]),
            calculator=self.calculator,
        )

        scene_cfg = config["scene"]
        self.synchronizer = SceneSynchronizer(
            smoothing_factor=scene_cfg["smoothing_factor"],
            head_anchor=scene_cfg["head_anchor"],
            tool_origin=scene_cfg["tool_origin"],
            initial_tool=ToolCommand.from_values(scene_cfg["tool_position"]),
        )

        render_cfg = config["render"]
        self.controls = OrbitControls(
            target=scene_cfg["head_anchor"],
            damping_factor=render_cfg["damping_factor"],
            min_distance=render_cfg["min_distance"],
            max_distance=render_cfg["max_distance"],
        )
        self.keys = ToolKeyController(self.synchronizer, self.controls)

        self.visualizer = Visualizer()
        self.fps_tracker = FpsTracker()

        self.window: Optional[SceneWindow] = None
        self.renderer: Optional[OpenCVSceneRenderer] = None
        self.render_loop: Optional[RenderLoop] = None
        self._stop_requested = False

    def _request_stop(self, *_):
        self._stop_requested = True

    def _on_key(self, key: int) -> None:
        if key in QUIT_KEYS:
            self._request_stop()
        elif key == MESH_KEY:
            self.toggle_mesh()
        elif key == DEBUG_KEY:
            self.toggle_debug()
        else:
            self.keys.handle(key)

    def toggle_mesh(self) -> None:
        self.show_mesh = not self.show_mesh
        log.info(f"Face mesh overlay {'on' if self.show_mesh else 'off'}")

    def toggle_debug(self) -> None:
        debug = not self.calculator.debug
        self.calculator.debug = debug
        logging.getLogger("facesync").setLevel(logging.DEBUG if debug else logging.NOTSET)
        log.info(f"Debug mode {'on' if debug else 'off'}")

    def _open_scene(self) -> None:
        render_cfg = self.config["render"]
        size = (render_cfg["width"], render_cfg["height"])
        try:
            self.window = SceneWindow(render_cfg["window_name"], size, headless=self.headless)
            self.renderer = OpenCVSceneRenderer(
                render_cfg["window_name"], size, fov_deg=render_cfg["fov_deg"], headless=self.headless,
            )
        except cv2.error as e:
            raise ResourceInitFailure(f"Could not create scene window: {e}") from e

        self.render_loop = RenderLoop(
            self.window,
            self.synchronizer,
            self.renderer,
            pose_source=self.session.latest_pose,
            controls=self.controls,
            on_key=self._on_key,
        )

    def _show_camera_preview(self) -> None:
        frame = self.session.last_frame
        if frame is None:
            return

        display = frame.copy()
        h, w = display.shape[:2]
        landmarks = first_face_landmarks(self.session.last_results)
        if landmarks is None:
            self.visualizer.draw_no_face_text(display)
        else:
            if self.show_mesh:
                self.visualizer.draw_face_mesh(display, landmarks)
            self.visualizer.draw_pose_points(display, select_image_points(landmarks, w, h))

        fps = self.fps_tracker.update()
        self.visualizer.draw_pose_hud(display, self.session.latest_pose(), fps)
        cv2.imshow(CAMERA_WINDOW, display)

    def run(self) -> int:
        log.info("Starting face tracking...")
        log.info("Keys: Q=Quit | WASD/RF=Move tool | IJKL/UO=Rotate tool | M=Follow head | [ ]=Zoom | , .=Orbit | T=Mesh | V=Debug")

        try:
            signal.signal(signal.SIGTERM, self._request_stop)
            signal.signal(signal.SIGINT, self._request_stop)
        except ValueError:
            # Not on the main thread
            log.debug("Signal handlers not installed")

        try:
            self._open_scene()
            self.session.start()
        except ResourceInitFailure as e:
            log.critical(f"Initialization failed: {e}")
            self._shutdown()
            return 1

        self.render_loop.start()
        try:
            while not self._stop_requested:
                if self.session.step() and self.show_camera:
                    self._show_camera_preview()
                self.window.pump()
        finally:
            self._shutdown()
        return 0

    def _shutdown(self) -> None:
        # Render loop first so no frame reads a pose mid-teardown
        if self.render_loop is not None:
            self._best_effort("render loop", self.render_loop.stop)
        elif self.renderer is not None:
            self._best_effort("scene renderer", self.renderer.close)
        self._best_effort("tracking session", self.session.stop)
        if self.window is not None:
            self._best_effort("scene window", self.window.close)
        if not self.headless:
            self._best_effort("windows", cv2.destroyAllWindows)
        log.info("Face tracking stopped")

    @staticmethod
    def _best_effort(label: str, fn) -> None:
        try:
            fn()
        except Exception as e:
            log.warning(f"Error while closing {label}: {e}")
