from __future__ import annotations

import logging
from typing import Any, Dict

from facesync.core.scene_sync import DEFAULT_TOOL_POSITION, HEAD_ANCHOR, HEAD_SMOOTHING_FACTOR, TOOL_ORIGIN
from facesync.mediapipe.head_pose import DISTORTION_COEFFS, NORMALIZED_FOCAL_Y
from facesync.utils.config_utils import as_bool, as_float, as_float_list, as_int, as_vec3, get_section
from facesync.utils.load_config import load_yaml_section

log = logging.getLogger(__name__)


def _smoothing_factor(value: Any) -> float:
    alpha = as_float(value, HEAD_SMOOTHING_FACTOR)
    if not (0.0 < alpha <= 1.0):
        log.warning(f"scene.smoothing_factor={alpha} outside (0, 1]; using {HEAD_SMOOTHING_FACTOR}")
        return HEAD_SMOOTHING_FACTOR
    return alpha


def load_tracking_config(path: str) -> Dict[str, Any]:
    root = load_yaml_section(path, "tracking")

    camera = get_section(root, "camera")
    face_mesh = get_section(root, "face_mesh")
    pose = get_section(root, "pose")
    scene = get_section(root, "scene")
    render = get_section(root, "render")

    source = camera.get("source", 0)
    if not isinstance(source, (int, str)):
        source = 0

    return {
        "camera": {
            "source": source,
            "width": as_int(camera.get("width"), 640),
            "height": as_int(camera.get("height"), 480),
        },
        "face_mesh": {
            "max_num_faces": as_int(face_mesh.get("max_num_faces"), 1),
            "refine_landmarks": as_bool(face_mesh.get("refine_landmarks"), True),
            "min_detection_confidence": as_float(face_mesh.get("min_detection_confidence"), 0.5),
            "min_tracking_confidence": as_float(face_mesh.get("min_tracking_confidence"), 0.5),
        },
        "pose": {
            "normalized_focal_y": as_float(pose.get("normalized_focal_y"), NORMALIZED_FOCAL_Y),
            "distortion": as_float_list(pose.get("distortion"), DISTORTION_COEFFS, 4),
            "debug": as_bool(pose.get("debug"), False),
        },
        "scene": {
            "smoothing_factor": _smoothing_factor(scene.get("smoothing_factor")),
            "head_anchor": as_vec3(scene.get("head_anchor"), HEAD_ANCHOR),
            "tool_origin": as_vec3(scene.get("tool_origin"), TOOL_ORIGIN),
            "tool_position": as_vec3(scene.get("tool_position"), DEFAULT_TOOL_POSITION),
        },
        "render": {
            "window_name": str(render.get("window_name") or "Face Sync"),
            "width": as_int(render.get("width"), 800),
            "height": as_int(render.get("height"), 600),
            "fov_deg": as_float(render.get("fov_deg"), 60.0),
            "damping_factor": as_float(render.get("damping_factor"), 0.05),
            "min_distance": as_float(render.get("min_distance"), 3.0),
            "max_distance": as_float(render.get("max_distance"), 10.0),
            "show_camera": as_bool(render.get("show_camera"), True),
            "show_mesh": as_bool(render.get("show_mesh"), True),
        },
    }
