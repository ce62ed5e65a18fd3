import numpy as np
import pytest

from facesync.core.scene_sync import HEAD_SMOOTHING_FACTOR, SceneSynchronizer
from facesync.core.types import Pose, ToolCommand
from facesync.utils.exceptions import ConfigurationError


def pose(pitch=0.0, yaw=0.0, roll=0.0):
    return Pose.from_values((0.0, 0.0, 40.0), (pitch, yaw, roll))


def test_head_converges_geometrically():
    sync = SceneSynchronizer(smoothing_factor=0.1)
    target = pose(10.0, -20.0, 30.0)

    for n in range(1, 31):
        sync.update(target)
        remaining = np.abs(target.rotation - sync.head.rotation)
        assert np.allclose(remaining, np.abs(target.rotation) * 0.9 ** n)

    assert sync.head.tracking


def test_factor_one_snaps_to_pose():
    sync = SceneSynchronizer(smoothing_factor=1.0)
    sync.update(pose(12.0, 5.0, -3.0))
    assert np.allclose(sync.head.rotation, (12.0, 5.0, -3.0))


def test_head_position_stays_at_anchor():
    sync = SceneSynchronizer(head_anchor=(0.0, 1.5, 0.0))
    for _ in range(5):
        sync.update(pose(45.0, 45.0, 45.0))
    assert np.array_equal(sync.head.position, (0.0, 1.5, 0.0))


def test_null_pose_leaves_head_untouched():
    sync = SceneSynchronizer()
    sync.update(pose(30.0, 10.0, 0.0))
    before = sync.head.snapshot()

    for _ in range(10):
        sync.update(None)

    assert sync.head.snapshot() == before


def test_null_pose_keeps_tool_on_head():
    sync = SceneSynchronizer(smoothing_factor=1.0)
    sync.update(pose(30.0, 0.0, 0.0))
    mirrored = sync.tool.rotation.copy()

    sync.update(None)
    assert np.array_equal(sync.tool.rotation, mirrored)


def test_override_applies_without_a_face():
    sync = SceneSynchronizer(smoothing_factor=1.0)
    sync.update(pose(10.0, 20.0, 30.0))

    sync.set_tool_command(ToolCommand.from_values((0.0, 0.0, 0.0), (90.0, 0.0, 0.0)))
    sync.update(None)
    assert np.array_equal(sync.tool.rotation, (90.0, 0.0, 0.0))


def test_clearing_override_without_a_face_returns_tool_to_head():
    sync = SceneSynchronizer(smoothing_factor=1.0)
    sync.update(pose(10.0, 20.0, 30.0))
    sync.set_tool_command(ToolCommand.from_values((0.0, 0.0, 0.0), (90.0, 0.0, 0.0)))
    sync.update(None)

    sync.set_tool_command(ToolCommand.from_values((0.0, 0.0, 0.0)))
    sync.update(None)

    assert np.array_equal(sync.tool.rotation, sync.head.rotation)
    assert np.array_equal(sync.tool.rotation, (10.0, 20.0, 30.0))


def test_tool_position_comes_from_command_only():
    sync = SceneSynchronizer(tool_origin=(0.0, 1.5, 0.0),
                             initial_tool=ToolCommand.from_values((1.5, 0.0, 0.0)))
    assert np.allclose(sync.tool.position, (1.5, 1.5, 0.0))

    sync.update(pose(80.0, -60.0, 10.0))
    assert np.allclose(sync.tool.position, (1.5, 1.5, 0.0))

    sync.set_tool_command(ToolCommand.from_values((-1.0, 0.5, 2.0)))
    sync.update(None)
    assert np.allclose(sync.tool.position, (-1.0, 2.0, 2.0))


def test_head_ignores_tool_command():
    sync = SceneSynchronizer()
    sync.update(pose(10.0, 0.0, 0.0))
    head_before = sync.head.snapshot()

    sync.set_tool_command(ToolCommand.from_values((3.0, 3.0, 3.0), (90.0, 90.0, 90.0)))
    sync.update(None)

    assert sync.head.snapshot() == head_before


def test_tool_mirrors_head_rotation():
    sync = SceneSynchronizer(smoothing_factor=0.5)
    sync.update(pose(20.0, 10.0, 0.0))
    assert np.array_equal(sync.tool.rotation, sync.head.rotation)
    # Mirror is a copy, not a shared array
    assert sync.tool.rotation is not sync.head.rotation


def test_rotation_override_wins():
    sync = SceneSynchronizer()
    sync.set_tool_command(ToolCommand.from_values((0.0, 0.0, 0.0), (5.0, 6.0, 7.0)))
    sync.update(pose(50.0, 50.0, 50.0))
    assert np.array_equal(sync.tool.rotation, (5.0, 6.0, 7.0))


def test_proxy_arrays_are_never_rebound():
    sync = SceneSynchronizer()
    head_rot, tool_pos = sync.head.rotation, sync.tool.position
    sync.update(pose(1.0, 2.0, 3.0))
    sync.set_tool_command(ToolCommand.from_values((0.0, 1.0, 0.0)))
    sync.update(None)
    assert sync.head.rotation is head_rot
    assert sync.tool.position is tool_pos


def test_reset_restores_initial_state():
    sync = SceneSynchronizer()
    initial_head, initial_tool = sync.head.snapshot(), sync.tool.snapshot()
    sync.update(pose(10.0, 10.0, 10.0))
    sync.reset()
    assert sync.head.snapshot() == initial_head
    assert sync.tool.snapshot() == initial_tool
    assert not sync.head.tracking


@pytest.mark.parametrize("factor", [0.0, -0.1, 1.5])
def test_invalid_smoothing_factor(factor):
    with pytest.raises(ConfigurationError):
        SceneSynchronizer(smoothing_factor=factor)


def test_default_smoothing_factor():
    assert SceneSynchronizer().smoothing_factor == HEAD_SMOOTHING_FACTOR
