import time
from typing import Optional


class FpsTracker:
    """
    Frames-per-second over a sampling window. Call update() once per frame.
    With ema_alpha set, consecutive windows are blended to steady the HUD.
    """

    def __init__(self, sample_period_sec: float = 0.5, ema_alpha: Optional[float] = 0.2):
        self.sample_period_sec = float(sample_period_sec)
        self.ema_alpha = ema_alpha

        self._window_start = time.perf_counter()
        self._frames = 0
        self.fps = 0.0

    def update(self) -> float:
        self._frames += 1
        now = time.perf_counter()
        elapsed = now - self._window_start
        if elapsed < self.sample_period_sec:
            return self.fps

        measured = self._frames / elapsed
        if self.ema_alpha is None or self.fps == 0.0:
            self.fps = measured
        else:
            self.fps = self.ema_alpha * measured + (1.0 - self.ema_alpha) * self.fps

        self._window_start = now
        self._frames = 0
        return self.fps
