from .base import MessageHandler, MessagingTransport, TransportCallbacks, TransportConfig
from .signal_rest import SignalRestTransport, parse_envelope

__all__ = [
    "MessageHandler",
    "MessagingTransport",
    "TransportCallbacks",
    "TransportConfig",
    "SignalRestTransport",
    "parse_envelope",
]
