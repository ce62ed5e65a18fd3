import os
import textwrap

from facesync.core.config import load_tracking_config
from facesync.mediapipe.head_pose import DISTORTION_COEFFS
from facesync.utils.load_config import load_yaml_section, resolve_config_path


def write_yaml(tmp_path, text):
    path = tmp_path / "tracking_config.yaml"
    path.write_text(textwrap.dedent(text))
    return str(path)


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_tracking_config(str(tmp_path / "nope.yaml"))

    assert cfg["camera"] == {"source": 0, "width": 640, "height": 480}
    assert cfg["pose"]["normalized_focal_y"] == 1.28
    assert cfg["pose"]["distortion"] == DISTORTION_COEFFS
    assert cfg["scene"]["smoothing_factor"] == 0.1
    assert cfg["scene"]["tool_origin"] == (0.0, 1.5, 0.0)
    assert cfg["scene"]["tool_position"] == (1.5, 0.0, 0.0)
    assert cfg["render"]["window_name"] == "Face Sync"
    assert cfg["render"]["show_mesh"] is True


def test_overrides_are_applied(tmp_path):
    path = write_yaml(tmp_path, """
        tracking:
          camera:
            source: "/dev/video2"
            width: 1280
            height: 720
          pose:
            distortion: [0, 0, 0, 0]
            debug: yes
          scene:
            smoothing_factor: 0.5
            tool_position: [0.0, 1.0, -1.0]
          render:
            show_camera: false
            show_mesh: off
    """)
    cfg = load_tracking_config(path)

    assert cfg["camera"] == {"source": "/dev/video2", "width": 1280, "height": 720}
    assert cfg["pose"]["distortion"] == (0.0, 0.0, 0.0, 0.0)
    assert cfg["pose"]["debug"] is True
    assert cfg["scene"]["smoothing_factor"] == 0.5
    assert cfg["scene"]["tool_position"] == (0.0, 1.0, -1.0)
    assert cfg["render"]["show_camera"] is False
    assert cfg["render"]["show_mesh"] is False
    # Untouched sections keep their defaults
    assert cfg["face_mesh"]["max_num_faces"] == 1


def test_invalid_values_fall_back(tmp_path):
    path = write_yaml(tmp_path, """
        tracking:
          pose:
            normalized_focal_y: fast
            distortion: [1, 2]
          scene:
            smoothing_factor: 0
            head_anchor: [1, 2]
    """)
    cfg = load_tracking_config(path)

    assert cfg["pose"]["normalized_focal_y"] == 1.28
    assert cfg["pose"]["distortion"] == DISTORTION_COEFFS
    assert cfg["scene"]["smoothing_factor"] == 0.1
    assert cfg["scene"]["head_anchor"] == (0.0, 1.5, 0.0)


def test_broken_yaml_gives_empty_section(tmp_path):
    path = write_yaml(tmp_path, "tracking: [unclosed\n")
    assert load_yaml_section(path, "tracking") == {}


def test_dotted_section(tmp_path):
    path = write_yaml(tmp_path, """
        tracking:
          scene:
            smoothing_factor: 0.3
    """)
    assert load_yaml_section(path, "tracking.scene") == {"smoothing_factor": 0.3}
    assert load_yaml_section(path, "tracking.render") == {}


def test_config_path_from_environment(monkeypatch, tmp_path):
    path = write_yaml(tmp_path, "tracking: {}\n")
    monkeypatch.setenv("FS_CONFIG_PATH", path)
    assert resolve_config_path() == path

    monkeypatch.delenv("FS_CONFIG_PATH")
    assert resolve_config_path("fallback.yaml") == "fallback.yaml"


def test_bundled_config_matches_defaults():
    root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    bundled = load_tracking_config(os.path.join(root, "config", "tracking_config.yaml"))
    assert bundled["scene"]["smoothing_factor"] == 0.1
    assert bundled["pose"]["distortion"] == DISTORTION_COEFFS
