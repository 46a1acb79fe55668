"""Application configuration and gate pass thresholds."""

from dataclasses import dataclass


@dataclass
class GatePassSettings:
    """Centralized gate pass timing and token settings."""

    min_buffer_minutes: float = 5.0
    token_bytes: int = 32
    max_update_retries: int = 5


GATEPASS_SETTINGS = GatePassSettings()

DEFAULT_CONFIG = {
    "redis_url": "redis://localhost:6379/0",
    "secret_key": "change-me",
    # expose keys for the JSON config file
    "gatepass_min_buffer_minutes": GATEPASS_SETTINGS.min_buffer_minutes,
    "gatepass_token_bytes": GATEPASS_SETTINGS.token_bytes,
    "gatepass_max_update_retries": GATEPASS_SETTINGS.max_update_retries,
    "verifier_roles": ["security", "super_admin", "sub_admin"],
    "known_roles": [
        "employee",
        "manager",
        "hod",
        "hr",
        "security",
        "super_admin",
        "sub_admin",
    ],
    "security_log_retention_days": 30,
}

# Global configuration object to share across modules. Default settings may be
# injected at runtime by ``set_config``.
config = DEFAULT_CONFIG.copy()


# set_config routine
def set_config(cfg: dict) -> None:
    """Replace the global configuration with ``cfg``.

    Ensures required defaults like ``verifier_roles`` are present so callers
    can rely on them being available.
    """

    config.clear()
    config.update(DEFAULT_CONFIG)
    config.update(cfg)

    # Keep centralized settings in sync with overrides
    GATEPASS_SETTINGS.min_buffer_minutes = float(
        config.get("gatepass_min_buffer_minutes", GATEPASS_SETTINGS.min_buffer_minutes)
    )
    GATEPASS_SETTINGS.token_bytes = int(
        config.get("gatepass_token_bytes", GATEPASS_SETTINGS.token_bytes)
    )
    GATEPASS_SETTINGS.max_update_retries = int(
        config.get("gatepass_max_update_retries", GATEPASS_SETTINGS.max_update_retries)
    )
