"""Configuration loading utilities.

The JSON configuration file is read once at startup. Missing keys are filled
from :data:`CONFIG_DEFAULTS` and a few values may be overridden from the
environment (``REDIS_URL``, ``SECRET_KEY``).
"""

from __future__ import annotations

import copy
import json
import os

from config import DEFAULT_CONFIG

# Default configuration values for :func:`load_config`.
CONFIG_DEFAULTS = {
    **DEFAULT_CONFIG,
    "log_level": "INFO",
    "log_file": "",
}

__all__ = ["CONFIG_DEFAULTS", "load_config"]


# Internal helpers --------------------------------------------------------


def _read_config_file(path: str) -> dict:
    """Read a JSON configuration file from ``path``."""

    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path) as f:
        return json.load(f)


def _apply_defaults(data: dict) -> dict:
    """Populate missing configuration keys and normalize fields."""

    for key, value in CONFIG_DEFAULTS.items():
        if isinstance(value, (dict, list)):
            data.setdefault(key, copy.deepcopy(value))
        else:
            data.setdefault(key, value)
    buffer_minutes = data.get("gatepass_min_buffer_minutes")
    if not isinstance(buffer_minutes, (int, float)) or buffer_minutes < 0:
        raise ValueError("gatepass_min_buffer_minutes must be non-negative")
    for key in ("verifier_roles", "known_roles"):
        roles = data.get(key)
        if roles is None:
            roles = list(CONFIG_DEFAULTS[key])
        elif isinstance(roles, str):
            roles = [roles]
        data[key] = [str(r).strip().lower() for r in roles if str(r).strip()]
    return data


# load_config routine
def load_config(path: str | None = None, *, data: dict | None = None) -> dict:
    """Load configuration from ``path``.

    When ``data`` is provided, it is used instead of reading from ``path``.
    A missing file yields the defaults so the service can start with only
    environment overrides.
    """

    if data is None:
        path = path or os.getenv("CONFIG_PATH", "config.json")
        try:
            data = _read_config_file(path)
        except FileNotFoundError:
            data = {}
    data = _apply_defaults(dict(data))
    data["redis_url"] = os.getenv("REDIS_URL", data["redis_url"])
    data["secret_key"] = os.getenv("SECRET_KEY", data["secret_key"])
    return data
