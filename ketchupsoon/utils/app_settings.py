"""
App settings utilities

Persist lightweight settings (notification toggles, check-in horizon) in a JSON
file under the data directory. Values are normalized on load so callers can
rely on every known key being present.
"""
from __future__ import annotations

import os
import json
import logging
from typing import Any, Dict, Optional

from flask import current_app

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = 'settings.json'

DEFAULT_SETTINGS: Dict[str, Any] = {
    'catch_up_notifications_enabled': True,
    'check_in_horizon_days': 21,
    'hangout_reminder_minutes': 60,
}


def _data_dir() -> str:
    try:
        return current_app.config.get('DATA_DIR', 'data')
    except RuntimeError:
        # Outside an application context
        return os.environ.get('DATA_DIR', 'data')


def settings_path(data_dir: Optional[str] = None) -> str:
    base = data_dir or _data_dir()
    os.makedirs(base, exist_ok=True)
    return os.path.join(base, SETTINGS_FILENAME)


def _normalize(key: str, value: Any) -> Any:
    if key == 'catch_up_notifications_enabled':
        if isinstance(value, str):
            return value.strip().lower() in ('1', 'true', 'on', 'yes')
        return bool(value)
    if key in ('check_in_horizon_days', 'hangout_reminder_minutes'):
        try:
            number = int(value)
        except (TypeError, ValueError):
            return DEFAULT_SETTINGS[key]
        return number if number >= 0 else DEFAULT_SETTINGS[key]
    return value


def load_app_settings(data_dir: Optional[str] = None) -> Dict[str, Any]:
    """Load settings JSON merged over the defaults."""
    settings = dict(DEFAULT_SETTINGS)
    path = settings_path(data_dir)
    if not os.path.exists(path):
        return settings
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return settings
    if isinstance(data, dict):
        for key, value in data.items():
            settings[key] = _normalize(key, value)
    return settings


def save_app_settings(updates: Dict[str, Any], data_dir: Optional[str] = None) -> Dict[str, Any]:
    """Persist settings, merging with existing values. Returns the stored settings."""
    settings = load_app_settings(data_dir)
    for key, value in updates.items():
        if key in DEFAULT_SETTINGS and value is not None:
            settings[key] = _normalize(key, value)
    path = settings_path(data_dir)
    with open(path, 'w') as f:
        json.dump(settings, f, indent=2)
    return settings
