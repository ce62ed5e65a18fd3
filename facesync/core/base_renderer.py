"""Base renderer interface for the proxy scene."""

from abc import ABC, abstractmethod
from typing import Optional

from facesync.core.orbit_controls import OrbitControls
from facesync.core.types import ProxyTransform


class BaseSceneRenderer(ABC):
    """
    Draws the head and tool proxies. Renderers only read the transforms;
    they never write to them.
    """

    @abstractmethod
    def render(self, head: ProxyTransform, tool: ProxyTransform, controls: Optional[OrbitControls] = None) -> None:
        pass

    def resize(self, width: int, height: int) -> None:
        """Viewport changed. Default: nothing to do."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release drawing resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
