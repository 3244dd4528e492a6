"""Builds notification sinks from the `sinks` config mapping."""

import logging

from .base import NotificationSink
from .console_sink import ConsoleSink
from .ntfy_sink import NtfySink

log = logging.getLogger(__name__)

# Configuration warnings collected during loading
_CONFIG_WARNINGS: list[dict] = []


def get_available_sinks() -> list[str]:
    return ["console", "ntfy"]


def get_config_warnings() -> list[dict]:
    """Get configuration warnings from last load."""
    return _CONFIG_WARNINGS.copy()


def load_sinks_from_config(sinks_config: dict) -> list[NotificationSink]:
    """Load and instantiate sinks from config dict."""
    global _CONFIG_WARNINGS
    sinks = []
    _CONFIG_WARNINGS = []

    for name in sinks_config:
        if name not in get_available_sinks():
            _CONFIG_WARNINGS.append({"sink": name, "message": "Unknown sink type"})

    # Console sink is on unless explicitly disabled
    console_conf = sinks_config.get("console", {})
    if console_conf.get("enabled", True):
        sinks.append(ConsoleSink())

    ntfy_conf = sinks_config.get("ntfy", {})
    if ntfy_conf.get("enabled", False):
        url = ntfy_conf.get("url", "")
        if not url:
            _CONFIG_WARNINGS.append({
                "sink": "ntfy",
                "message": "Enabled but no URL configured",
            })
        else:
            sinks.append(NtfySink(url=url, verify=ntfy_conf.get("verify", True)))

    for w in _CONFIG_WARNINGS:
        log.warning(f"[registry] {w['sink']} - {w['message']}")

    return sinks
