import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List, Tuple

import cv2

from facesync.core.render_loop import FrameCallback, FrameScheduler

log = logging.getLogger(__name__)

NO_KEY = 0xFF


class SceneWindow(FrameScheduler):
    """
    OpenCV HighGUI window acting as the display-refresh source.

    pump() is one refresh: it services the GUI event queue (cv2.waitKey),
    dispatches "key" and "resize" events, then runs the frame callbacks that
    were requested before this refresh.

    In headless mode no window is created and pump() paces itself to
    refresh_hz instead.
    """

    def __init__(self, name: str, size: Tuple[int, int] = (800, 600), headless: bool = False, refresh_hz: float = 60.0):
        self.name = name
        self.headless = headless
        self._refresh_interval = 1.0 / max(1.0, float(refresh_hz))
        self._last_pump = 0.0

        self._next_handle = 0
        self._pending: Dict[int, FrameCallback] = {}
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)
        self._size = (int(size[0]), int(size[1]))
        self._closed = False

        if not headless:
            cv2.namedWindow(self.name, cv2.WINDOW_NORMAL)
            cv2.resizeWindow(self.name, *self._size)
        log.info(f"SceneWindow '{name}' ready ({self._size[0]}x{self._size[1]}, headless={headless})")

    @property
    def size(self) -> Tuple[int, int]:
        return self._size

    @property
    def pending_frames(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: FrameCallback) -> int:
        self._next_handle += 1
        self._pending[self._next_handle] = callback
        return self._next_handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def add_listener(self, event: str, callback: Callable) -> None:
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Callable) -> None:
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def _emit(self, event: str, *args) -> None:
        for callback in list(self._listeners.get(event, [])):
            callback(*args)

    def _poll_events(self) -> None:
        if self.headless:
            wait = self._refresh_interval - (time.perf_counter() - self._last_pump)
            if wait > 0:
                time.sleep(wait)
            return

        key = cv2.waitKey(1) & 0xFF
        if key != NO_KEY:
            self._emit("key", key)

        try:
            _, _, w, h = cv2.getWindowImageRect(self.name)
        except cv2.error:
            return
        if w > 0 and h > 0 and (w, h) != self._size:
            self._size = (w, h)
            log.debug(f"SceneWindow resized to {w}x{h}")
            self._emit("resize", w, h)

    def pump(self) -> None:
        if self._closed:
            return
        self._poll_events()
        self._last_pump = time.perf_counter()

        due, self._pending = self._pending, {}
        for callback in due.values():
            callback(self._last_pump)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pending.clear()
        self._listeners.clear()
        if not self.headless:
            try:
                cv2.destroyWindow(self.name)
            except cv2.error:
                pass
