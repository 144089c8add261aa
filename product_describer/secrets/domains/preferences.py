"""Preferences manager for product-describer.

Persistent user preferences live in the XDG Base Directory location
~/.config/product-describer/preferences.json. Today the only key in use is
``config_path``.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "product-describer"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"


def _load_preferences() -> Dict[str, Any]:
    """Read the preferences file; a missing or unreadable file yields {}."""
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        data = json.loads(PREFERENCES_FILE.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return data


def _save_preferences(preferences: Dict[str, Any]) -> None:
    try:
        PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
        PREFERENCES_FILE.write_text(json.dumps(preferences, indent=2))
    except OSError as e:
        logger.error(f"Failed to save preferences to {PREFERENCES_FILE}: {e}")
        raise


def get_preference(key: str) -> Optional[str]:
    return _load_preferences().get(key)


def set_preference(key: str, value: str) -> None:
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove ``key``; clearing an unset key is a no-op."""
    preferences = _load_preferences()
    if preferences.pop(key, None) is None:
        logger.debug(f"Preference '{key}' not found, nothing to clear")
        return
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' cleared")


def get_all_preferences() -> Dict[str, Any]:
    return _load_preferences()
