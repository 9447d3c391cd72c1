"""Path constants for the capture station."""

from __future__ import annotations

import os
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_ROOT.parent

DEFAULT_CONFIG_PATH = PACKAGE_ROOT / "config.txt"


def _user_state_dir() -> Path:
    base = os.environ.get("XDG_STATE_HOME")
    if base:
        return Path(base) / "garment_capture"
    return Path.home() / ".local" / "state" / "garment_capture"


USER_STATE_DIR = _user_state_dir()
USER_CONFIG_OVERRIDES_DIR = USER_STATE_DIR / "config_overrides"


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
    "USER_CONFIG_OVERRIDES_DIR",
    "USER_STATE_DIR",
]
