import logging
from typing import Optional, Sequence

import numpy as np

from facesync.core.types import Pose, ProxyTransform, ToolCommand
from facesync.utils.exceptions import ConfigurationError

log = logging.getLogger(__name__)

# Blend weight applied to the head each frame a pose is available:
#   head += (target - head) * HEAD_SMOOTHING_FACTOR
# 1.0 snaps to the latest pose, small values trade latency for stability.
HEAD_SMOOTHING_FACTOR = 0.1

HEAD_ANCHOR = (0.0, 1.5, 0.0)
TOOL_ORIGIN = (0.0, 1.5, 0.0)
DEFAULT_TOOL_POSITION = (1.5, 0.0, 0.0)


class SceneSynchronizer:
    """
    Owns the head and tool proxies and nudges them once per render frame.

    Head: orientation follows the pose through exponential smoothing,
    position stays at its anchor.
    Tool: position comes straight from the latest user command; rotation is
    the command's override when it has one, otherwise a copy of the head.
    """

    def __init__(
        self,
        smoothing_factor: float = HEAD_SMOOTHING_FACTOR,
        head_anchor: Sequence[float] = HEAD_ANCHOR,
        tool_origin: Sequence[float] = TOOL_ORIGIN,
        initial_tool: Optional[ToolCommand] = None,
    ):
        if not (0.0 < float(smoothing_factor) <= 1.0):
            raise ConfigurationError(f"smoothing_factor must be in (0, 1], got {smoothing_factor}")

        self.smoothing_factor = float(smoothing_factor)
        self.tool_origin = np.asarray(tool_origin, dtype=np.float64).reshape(3)

        self._command = initial_tool or ToolCommand.from_values(DEFAULT_TOOL_POSITION)

        self.head = ProxyTransform(initial_position=head_anchor)
        self.tool = ProxyTransform(initial_position=self.tool_origin + self._command.position)

        log.info(f"SceneSynchronizer initialized (smoothing={self.smoothing_factor})")

    @property
    def tool_command(self) -> ToolCommand:
        return self._command

    def set_tool_command(self, command: ToolCommand) -> None:
        self._command = command

    def update(self, pose: Optional[Pose]) -> None:
        if pose is not None:
            self._update_head(pose)
        self._update_tool()

    def _update_head(self, pose: Pose) -> None:
        head = self.head
        head.rotation += (pose.rotation - head.rotation) * self.smoothing_factor
        if not head.tracking:
            head.tracking = True
            log.info("Head proxy is now tracking")

    def _update_tool(self) -> None:
        command = self._command
        tool = self.tool

        tool.position[:] = self.tool_origin + command.position

        if command.rotation is not None:
            tool.rotation[:] = command.rotation
        else:
            tool.rotation[:] = self.head.rotation
            tool.tracking = self.head.tracking

    def reset(self) -> None:
        self.head.reset()
        self.tool.reset()
        log.info("Scene proxies reset")
