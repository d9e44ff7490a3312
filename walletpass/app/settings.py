# walletpass/app/settings.py
from __future__ import annotations
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

import json5
from pydantic import JsonValue

from walletpass.core.dictpath import getByPath

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULTS_PATH", "USER_SETTINGS_ENV", "USER_SETTINGS_PATH",
    "userSettingsPath", "loadUserSettings", "loadSettings", "deepMerge",
    "settings", "settingsBool",
]


DEFAULTS_PATH = Path(__file__).resolve().with_name("settings_default.json5")
USER_SETTINGS_ENV = "WALLETPASS_SETTINGS"
USER_SETTINGS_PATH = Path("~/.walletpass/walletpass.json5")



def userSettingsPath() -> Path:
    """$WALLETPASS_SETTINGS when set, otherwise ~/.walletpass/walletpass.json5."""
    override = os.environ.get(USER_SETTINGS_ENV, "").strip()
    return (Path(override) if override else USER_SETTINGS_PATH).expanduser()



def loadUserSettings() -> JsonValue:
    """Reads the user settings file. A missing file is fine; a broken one is logged and ignored."""
    path = userSettingsPath()
    if not path.is_file():
        return {}
    try:
        data = json5.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        logger.error("Ignoring user settings '%s': %s", path, err)
        return {}
    if not isinstance(data, dict):
        logger.error("Ignoring user settings '%s': top level must be an object", path)
        return {}
    return cast(JsonValue, data)



@lru_cache(maxsize=1)
def loadSettings() -> JsonValue:
    defaults = json5.loads(DEFAULTS_PATH.read_text(encoding="utf-8"))
    return deepMerge(defaults, loadUserSettings())



def deepMerge(first: JsonValue, second: JsonValue) -> JsonValue:
    """
    Right-biased merge returning a new value. Two objects merge key by key;
    any other pair resolves to `second`.
    """
    if not (isinstance(first, dict) and isinstance(second, dict)):
        return second
    merged: dict[str, JsonValue] = dict(first)
    for key, value in second.items():
        merged[key] = deepMerge(merged[key], value) if key in merged else value
    return cast(JsonValue, merged)

# ---------- Accessors over merged settings ----------

def settings(path: str, default: Any = None) -> Any:
    """Value at dotted `path`, or `default` when missing or null."""
    value = getByPath(loadSettings(), path)
    return default if value is None else value



def settingsBool(path: str, default: bool = False) -> bool:
    value = getByPath(loadSettings(), path)
    return default if value is None else bool(value)
