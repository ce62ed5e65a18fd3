import logging
import os
from typing import Any, Dict

import yaml

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/tracking_config.yaml"


def resolve_config_path(default_path: str = DEFAULT_CONFIG_PATH) -> str:
    """Config path from FS_CONFIG_PATH, falling back to the bundled YAML."""
    path = os.getenv("FS_CONFIG_PATH", "").strip() or default_path
    if not os.path.exists(path):
        log.warning(f"Config file '{path}' not found. Using built-in defaults.")
    return path


def load_yaml_section(path: str, section: str) -> Dict[str, Any]:
    """
    Load a YAML section as dict. Dotted paths walk nested mappings:
      - "tracking"
      - "tracking.pose"
    Returns {} on error/missing so callers can fall back to defaults.
    """
    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        log.debug(f"No config at '{path}'.")
        return {}
    except (OSError, yaml.YAMLError) as e:
        log.warning(f"Config error for section '{section}' at '{path}': {e}. Using defaults.")
        return {}

    node: Any = raw
    for key in (section or "").split("."):
        if not key:
            continue
        if not isinstance(node, dict):
            return {}
        node = node.get(key, {})

    return node if isinstance(node, dict) else {}
