import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from facesync.core.base_renderer import BaseSceneRenderer
from facesync.core.orbit_controls import OrbitControls
from facesync.core.scene_sync import SceneSynchronizer
from facesync.core.types import Pose

log = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]
PoseSource = Callable[[], Optional[Pose]]


class FrameScheduler(ABC):
    """
    Display-refresh driven scheduling, requestAnimationFrame style: a
    requested callback runs once, on the next refresh.
    Also the source of window-level events ("resize", "key").
    """

    @abstractmethod
    def request_frame(self, callback: FrameCallback) -> int:
        pass

    @abstractmethod
    def cancel_frame(self, handle: int) -> None:
        pass

    @abstractmethod
    def add_listener(self, event: str, callback: Callable) -> None:
        pass

    @abstractmethod
    def remove_listener(self, event: str, callback: Callable) -> None:
        pass


class RenderLoop:
    """
    Per-frame driver: advance the orbit controls, push the latest pose into
    the synchronizer, draw. Runs until stop(); stop() is final.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        synchronizer: SceneSynchronizer,
        renderer: BaseSceneRenderer,
        pose_source: PoseSource,
        controls: Optional[OrbitControls] = None,
        on_key: Optional[Callable[[int], None]] = None,
    ):
        self.scheduler = scheduler
        self.synchronizer = synchronizer
        self.renderer = renderer
        self.pose_source = pose_source
        self.controls = controls
        self.on_key = on_key

        self.frame_count = 0
        self._running = False
        self._stopped = False
        self._handle: Optional[int] = None
        self._listeners: List[Tuple[str, Callable]] = []

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        if self._stopped:
            raise RuntimeError("RenderLoop cannot be restarted after stop()")

        self._running = True
        self._listen("resize", self._on_resize)
        if self.on_key is not None:
            self._listen("key", self.on_key)

        self._handle = self.scheduler.request_frame(self._on_frame)
        log.info("Render loop started")

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._running = False

        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            self._handle = None

        for event, callback in self._listeners:
            self.scheduler.remove_listener(event, callback)
        self._listeners.clear()

        self.renderer.close()
        log.info(f"Render loop stopped after {self.frame_count} frames")

    def _listen(self, event: str, callback: Callable) -> None:
        self.scheduler.add_listener(event, callback)
        self._listeners.append((event, callback))

    def _on_resize(self, width: int, height: int) -> None:
        self.renderer.resize(width, height)

    def _on_frame(self, timestamp: float) -> None:
        # A callback queued before stop() must not run a frame
        if not self._running:
            return

        self._handle = None
        if self.controls is not None:
            self.controls.update()

        self.synchronizer.update(self.pose_source())
        self.renderer.render(self.synchronizer.head, self.synchronizer.tool, self.controls)
        self.frame_count += 1

        if self._running:
            self._handle = self.scheduler.request_frame(self._on_frame)

    def __enter__(self) -> "RenderLoop":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
