"""Lightweight helpers for reading/writing small JSON settings files."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from .persistence import DATA_DIR

logger = logging.getLogger(__name__)

GUI_SETTINGS_FILE = Path(os.getenv("TICTACTOE_AI_GUI_SETTINGS", os.path.join(DATA_DIR, "gui_settings.json")))
GUI_DEFAULTS: Dict[str, Any] = {
    "difficulty": "adaptive",
    "delay_ms": 300,
}


def load_settings(path: Path, defaults: Dict[str, Any]) -> Dict[str, Any]:
    """
    Load settings from ``path`` merging with ``defaults``.

    Unknown keys are dropped. Returns defaults if the file is missing or invalid.
    """
    data = dict(defaults)
    if not path.exists():
        return data
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file %s (%s).", path, exc)
        return data
    if isinstance(raw, dict):
        for key, value in raw.items():
            if key in defaults:
                data[key] = value
    return data


def save_settings(path: Path, data: Dict[str, Any]) -> bool:
    """Write ``data`` as JSON to ``path``; returns False when the write failed."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not save settings to %s (%s).", path, exc)
        return False
    return True
