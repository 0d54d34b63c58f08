"""User configuration: which operator profile new QSOs default to.

The JSON file lives in the user's config directory and can be relocated via
TUILOG_CONFIG. Shape:
{ "default_profile": 1 }
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TUILOG_CONFIG"
CONFIG_FILENAME = "config.json"


def _config_path() -> Path:
    """Resolve the JSON config path, honoring env override."""
    env = os.getenv(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser()
    cfg_dir = Path(user_config_dir(appname="tuilog", appauthor=False))
    cfg_dir.mkdir(parents=True, exist_ok=True)
    return cfg_dir / CONFIG_FILENAME


def load_config() -> Dict[str, Any]:
    """Return the config as a dict; an unreadable file counts as empty."""
    p = _config_path()
    if not p.exists():
        return {}
    try:
        with p.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", p, e)
        return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring config %s: expected a JSON object", p)
        return {}
    return raw


def get_default_profile_id() -> Optional[int]:
    val = load_config().get("default_profile")
    # bool is an int subclass
    if isinstance(val, int) and not isinstance(val, bool):
        return val
    return None


def set_default_profile_id(profile_id: Optional[int]) -> Path:
    """Persist the default profile (None clears it) and return the file path."""
    data = load_config()
    if profile_id is None:
        data.pop("default_profile", None)
    else:
        data["default_profile"] = profile_id
    p = _config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return p
