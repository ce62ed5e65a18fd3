from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

import numpy as np


def _vec3(values: Sequence[float]) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected 3 components, got shape {arr.shape}")
    return arr


def _xyz(v: np.ndarray) -> Dict[str, float]:
    return {"x": float(v[0]), "y": float(v[1]), "z": float(v[2])}


@dataclass(frozen=True)
class Pose:
    """
    Head pose for one frame.
    position: camera-relative translation from the PnP solve.
    rotation: (pitch, yaw, roll) in degrees.
    """
    position: np.ndarray
    rotation: np.ndarray

    @classmethod
    def from_values(cls, position: Sequence[float], rotation: Sequence[float]) -> "Pose":
        return cls(position=_vec3(position), rotation=_vec3(rotation))

    @property
    def pitch(self) -> float:
        return float(self.rotation[0])

    @property
    def yaw(self) -> float:
        return float(self.rotation[1])

    @property
    def roll(self) -> float:
        return float(self.rotation[2])

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {"position": _xyz(self.position), "rotation": _xyz(self.rotation)}


@dataclass(frozen=True)
class ToolCommand:
    """User supplied tool transform. rotation=None keeps the tool aligned with the head."""
    position: np.ndarray
    rotation: Optional[np.ndarray] = None

    @classmethod
    def from_values(cls, position: Sequence[float], rotation: Optional[Sequence[float]] = None) -> "ToolCommand":
        return cls(position=_vec3(position), rotation=None if rotation is None else _vec3(rotation))


@dataclass
class ProxyTransform:
    """
    Persistent transform of a drawn object. The arrays are mutated in place
    every frame and never rebound, so renderers may keep references to them.
    """
    initial_position: np.ndarray
    initial_rotation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    position: np.ndarray = field(init=False)
    rotation: np.ndarray = field(init=False)
    tracking: bool = field(init=False, default=False)

    def __post_init__(self):
        self.initial_position = _vec3(self.initial_position)
        self.initial_rotation = _vec3(self.initial_rotation)
        self.position = self.initial_position.copy()
        self.rotation = self.initial_rotation.copy()

    def reset(self) -> None:
        self.position[:] = self.initial_position
        self.rotation[:] = self.initial_rotation
        self.tracking = False

    def snapshot(self) -> bytes:
        return self.position.tobytes() + self.rotation.tobytes()
