import numpy as np

from facesync.app.tracking_app import ToolKeyController
from facesync.core.orbit_controls import OrbitControls
from facesync.core.scene_sync import SceneSynchronizer
from facesync.core.types import Pose, ToolCommand


def make_controller():
    sync = SceneSynchronizer(smoothing_factor=1.0, initial_tool=ToolCommand.from_values((0.0, 0.0, 0.0)))
    controls = OrbitControls()
    return ToolKeyController(sync, controls), sync, controls


def test_position_keys_nudge_the_tool():
    keys, sync, _ = make_controller()
    for key in "wwdr":
        assert keys.handle(ord(key))

    assert np.allclose(sync.tool_command.position, (0.1, 0.2, 0.1))
    sync.update(None)
    assert np.allclose(sync.tool.position, (0.1, 1.7, 0.1))


def test_position_is_clamped():
    keys, sync, _ = make_controller()
    for _ in range(100):
        keys.handle(ord("a"))
    assert sync.tool_command.position[0] == -3.0


def test_first_rotation_key_starts_from_current_tool_rotation():
    keys, sync, _ = make_controller()
    sync.update(Pose.from_values((0, 0, 40), (10.0, 20.0, 30.0)))

    keys.handle(ord("i"))

    assert np.allclose(sync.tool_command.rotation, (15.0, 20.0, 30.0))


def test_rotation_override_and_clear():
    keys, sync, _ = make_controller()
    keys.handle(ord("l"))
    keys.handle(ord("o"))
    assert np.allclose(sync.tool_command.rotation, (0.0, -5.0, -5.0))

    keys.handle(ord("m"))
    assert sync.tool_command.rotation is None

    sync.update(Pose.from_values((0, 0, 40), (1.0, 2.0, 3.0)))
    assert np.allclose(sync.tool.rotation, (1.0, 2.0, 3.0))


def test_rotation_is_clamped():
    keys, sync, _ = make_controller()
    for _ in range(100):
        keys.handle(ord("j"))
    assert sync.tool_command.rotation[1] == 180.0


def test_camera_keys_drive_orbit_controls():
    keys, _, controls = make_controller()
    distance, azimuth = controls.distance, controls.azimuth

    assert keys.handle(ord("["))
    assert keys.handle(ord("."))
    controls.update()

    assert controls.distance < distance
    assert controls.azimuth > azimuth


def test_unknown_key_is_not_consumed():
    keys, sync, _ = make_controller()
    before = sync.tool_command
    assert keys.handle(ord("z")) is False
    assert sync.tool_command is before


def test_follow_head_key_works_while_face_is_lost():
    keys, sync, _ = make_controller()
    sync.update(Pose.from_values((0, 0, 40), (10.0, 20.0, 30.0)))
    keys.handle(ord("i"))
    sync.update(None)
    assert np.allclose(sync.tool.rotation, (15.0, 20.0, 30.0))

    keys.handle(ord("m"))
    sync.update(None)
    assert np.allclose(sync.tool.rotation, (10.0, 20.0, 30.0))
