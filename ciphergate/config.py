"""Configuration loaded from config.yaml and environment variables."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

log = logging.getLogger(__name__)

CONFIG_PATH = Path(os.getenv("CIPHERGATE_CONFIG", "/app/config.yaml"))

CONTACT_EXT = "textsecure"
HISTORY_SIZE = 10 * 1024
NOTIFICATION_TTL = 30

# Environment variables override config.yaml
ENV_OVERRIDES = {
    "mount_point": "CIPHERGATE_MOUNT_POINT",
    "key_path": "CIPHERGATE_KEY_PATH",
    "host": "CIPHERGATE_HOST",
    "port": "CIPHERGATE_PORT",
    "debug": "CIPHERGATE_DEBUG",
    "test_mode": "CIPHERGATE_TEST_MODE",
    "volume_group": "CIPHERGATE_VOLUME_GROUP",
    "signal_api_url": "SIGNAL_API_URL",
    "receive_timeout": "SIGNAL_RECEIVE_TIMEOUT",
    "poll_interval": "SIGNAL_POLL_INTERVAL",
}


@dataclass
class GatewayConfig:
    mount_point: Path = Path("/mnt/interlock")
    key_path: str = "keys"
    host: str = "127.0.0.1"
    port: int = 4430
    debug: bool = False
    # Skips encrypted volume unlock/lock during registration
    test_mode: bool = False
    volume_group: str = "lvmvolume"
    volume_mapping: str = "ciphergate"
    history_size: int = HISTORY_SIZE
    notification_ttl: float = NOTIFICATION_TTL
    signal_api_url: str = "http://127.0.0.1:8080"
    receive_timeout: int = 10
    poll_interval: float = 1.0
    request_timeout: float = 30.0
    listener_backoff_initial: float = 1.0
    listener_backoff_max: float = 300.0
    sinks: dict = field(default_factory=dict)

    @property
    def key_storage_root(self) -> Path:
        return self.mount_point / self.key_path

    @property
    def storage_path(self) -> Path:
        """Transport key material, sentinel marker and number file."""
        return self.key_storage_root / "textsecure" / "private"

    @property
    def contacts_path(self) -> Path:
        return self.mount_point / "textsecure" / "contacts"

    @property
    def attachments_path(self) -> Path:
        return self.mount_point / "textsecure" / "attachments"

    @property
    def number_path(self) -> Path:
        return self.storage_path / "number"

    @property
    def log_level(self) -> str:
        return "debug" if self.debug else "error"


def _coerce(value, default):
    """Convert a raw config/env value to the type of the field default."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        return str(value).lower() in ("true", "1", "yes")
    if isinstance(default, Path):
        return Path(value)
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, dict):
        return dict(value or {})
    return str(value)


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(path: Optional[Path] = None) -> GatewayConfig:
    """Build the gateway config: defaults, then config.yaml, then env vars."""
    path = path or CONFIG_PATH
    raw = _load_yaml(path)
    config = GatewayConfig()
    known = {f.name for f in fields(GatewayConfig)}

    for key, value in raw.items():
        if key not in known:
            log.warning(f"[config] Ignoring unknown key '{key}' in {path}")
            continue
        setattr(config, key, _coerce(value, getattr(config, key)))

    for key, env_var in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            setattr(config, key, _coerce(value, getattr(config, key)))

    return config
