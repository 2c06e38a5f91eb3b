"""
Environment-driven server settings
"""
import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8765
    strict_payloads: bool = True
    enforce_lock: bool = False
    send_timeout: float = 5.0
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment; raises ValueError on a bad PORT or send timeout"""
    port = os.environ.get("PORT", "8765")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got {port!r}")

    timeout = os.environ.get("WORKSHOP_SEND_TIMEOUT", "5")
    try:
        send_timeout = float(timeout)
    except ValueError:
        raise ValueError(f"WORKSHOP_SEND_TIMEOUT must be a number, got {timeout!r}")

    return Settings(
        host=os.environ.get("SERVER_HOST", "0.0.0.0"),
        port=port_number,
        strict_payloads=_env_flag("WORKSHOP_STRICT_PAYLOADS", True),
        enforce_lock=_env_flag("WORKSHOP_ENFORCE_LOCK", False),
        send_timeout=send_timeout,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
