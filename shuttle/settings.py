from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from shuttle.db.database import get_app_data_dir
from shuttle.domain.models import DEFAULT_BYE_LABEL

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"


def _get_app_settings_path() -> Path:
    return get_app_data_dir() / SETTINGS_FILENAME


def _read_settings() -> dict[str, object]:
    path = _get_app_settings_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return {}
    if isinstance(data, dict):
        return data
    return {}


def _write_settings(data: dict[str, object]) -> None:
    path = _get_app_settings_path()
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def get_roster_path() -> str | None:
    """Return the roster file to import on startup, if one is configured."""
    env_path = os.environ.get("SHUTTLE_ROSTER_PATH")
    if env_path:
        return env_path
    value = _read_settings().get("roster_path")
    return str(value) if value else None


def set_roster_path(path: str) -> None:
    settings = _read_settings()
    settings["roster_path"] = path
    _write_settings(settings)


def get_bye_label() -> str:
    env_label = os.environ.get("SHUTTLE_BYE_LABEL")
    if env_label:
        return env_label
    return str(_read_settings().get("bye_label") or DEFAULT_BYE_LABEL)


def set_bye_label(label: str) -> None:
    settings = _read_settings()
    settings["bye_label"] = label
    _write_settings(settings)
