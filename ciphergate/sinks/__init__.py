from .base import NotificationSink
from .console_sink import ConsoleSink
from .ntfy_sink import NtfySink
from .registry import load_sinks_from_config, get_available_sinks, get_config_warnings

__all__ = [
    "NotificationSink",
    "ConsoleSink",
    "NtfySink",
    "load_sinks_from_config",
    "get_available_sinks",
    "get_config_warnings",
]
