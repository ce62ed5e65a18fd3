import logging

import pytest

from facesync.app.tracking_app import DEBUG_KEY, MESH_KEY, TrackingApp
from facesync.core.config import load_tracking_config
from facesync.utils.exceptions import ResourceInitFailure


class FakeSession:
    def __init__(self, start_error=None):
        self.start_error = start_error
        self.stopped = 0

    def start(self):
        if self.start_error is not None:
            raise self.start_error
        return True

    def stop(self):
        self.stopped += 1

    def latest_pose(self):
        return None


class ExplodingLoop:
    def stop(self):
        raise RuntimeError("renderer gone")


class FakeWindow:
    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1


@pytest.fixture
def app(monkeypatch, tmp_path):
    monkeypatch.setenv("FS_HEADLESS", "1")
    monkeypatch.setattr("facesync.app.tracking_app.signal.signal", lambda *args: None)
    app = TrackingApp(load_tracking_config(str(tmp_path / "missing.yaml")))
    yield app
    logging.getLogger("facesync").setLevel(logging.NOTSET)


def test_mesh_key_toggles_overlay(app):
    assert app.show_mesh is True
    app._on_key(MESH_KEY)
    assert app.show_mesh is False
    app._on_key(MESH_KEY)
    assert app.show_mesh is True


def test_debug_key_toggles_calculator_and_logging(app):
    assert app.calculator.debug is False
    app._on_key(DEBUG_KEY)
    assert app.calculator.debug is True
    assert logging.getLogger("facesync").level == logging.DEBUG

    app._on_key(DEBUG_KEY)
    assert app.calculator.debug is False
    assert logging.getLogger("facesync").level == logging.NOTSET


def test_quit_key_requests_stop(app):
    app._on_key(ord("q"))
    assert app._stop_requested


def test_other_keys_reach_tool_controls(app):
    before = app.synchronizer.tool_command.position.copy()
    app._on_key(ord("w"))
    assert app.synchronizer.tool_command.position[1] == pytest.approx(before[1] + 0.1)


def test_shutdown_continues_past_a_failing_step(app):
    session, window = FakeSession(), FakeWindow()
    app.session = session
    app.window = window
    app.render_loop = ExplodingLoop()

    app._shutdown()

    assert session.stopped == 1
    assert window.closed == 1


def test_init_failure_returns_exit_code_one(app):
    session = FakeSession(start_error=ResourceInitFailure("Could not open camera '0'"))
    app.session = session

    assert app.run() == 1
    assert session.stopped == 1
    assert app.renderer.canvas is None
