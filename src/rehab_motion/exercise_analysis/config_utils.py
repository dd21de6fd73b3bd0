import json
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from ..logging_utils import get_logger

logger = get_logger("ConfigUtils")


class CatalogError(ValueError):
    """Raised when a configuration file cannot be read as JSON."""


@dataclass(frozen=True)
class SessionSettings:
    """Runtime thresholds shared by the per-frame components."""
    visibility_threshold: float = 0.6  # Required-joint visibility for the gate
    angle_visibility_threshold: float = 0.5  # Landmark visibility needed to compute an angle
    min_landmark_count: int = 33
    max_missing_joints: int = 3
    angle_tolerance: float = 10.0  # Degrees
    frame_buffer_size: int = 1000
    display_rate_hz: float = 15.0
    encouragement_rate: float = 0.1
    audio_cooldown_seconds: float = 4.0
    audio_rate: int = 150  # Words per minute
    audio_volume: float = 1.0


def _load_json(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise CatalogError(f"Invalid JSON in {path}: {e}") from e


def load_catalog_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load the raw exercise catalog from JSON."""
    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), "exercise_catalog.json")
    return _load_json(config_path)


def load_session_settings(config_path: Optional[str] = None) -> SessionSettings:
    """Load session thresholds, ignoring unknown keys."""
    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), "session_config.json")
    raw = _load_json(config_path)
    known = {f.name for f in fields(SessionSettings)}
    unknown = set(raw) - known
    if unknown:
        logger.warning(f"Ignoring unknown session settings: {', '.join(sorted(unknown))}")
    return SessionSettings(**{k: v for k, v in raw.items() if k in known})
