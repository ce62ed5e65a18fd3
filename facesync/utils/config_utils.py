from __future__ import annotations

from typing import Any, Dict, Sequence, Tuple


def as_float(x: Any, default: float) -> float:
    try:
        return float(x)
    except Exception:
        return float(default)


def as_int(x: Any, default: int) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def as_bool(x: Any, default: bool) -> bool:
    if isinstance(x, bool):
        return x
    if isinstance(x, (int, float)):
        return bool(x)
    if isinstance(x, str):
        v = x.strip().lower()
        if v in ("1", "true", "yes", "on"):
            return True
        if v in ("0", "false", "no", "off"):
            return False
    return bool(default)


def as_vec3(x: Any, default: Sequence[float]) -> Tuple[float, float, float]:
    try:
        if len(x) == 3:
            return (float(x[0]), float(x[1]), float(x[2]))
    except Exception:
        pass
    return (float(default[0]), float(default[1]), float(default[2]))


def as_float_list(x: Any, default: Sequence[float], length: int) -> Tuple[float, ...]:
    try:
        if len(x) == length:
            return tuple(float(v) for v in x)
    except Exception:
        pass
    return tuple(float(v) for v in default)


def get_section(root: Dict[str, Any], key: str) -> Dict[str, Any]:
    v = root.get(key, {})
    return v if isinstance(v, dict) else {}
