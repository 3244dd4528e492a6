from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, BinaryIO, Callable

from ciphergate.models import InboundAttachment, InboundMessage

MessageHandler = Callable[[InboundMessage], Awaitable[None]]


@dataclass
class TransportConfig:
    """Settings handed to the transport during setup."""
    number: str
    storage_dir: Path
    verification_type: str = "sms"
    log_level: str = "error"


@dataclass
class TransportCallbacks:
    """Hooks the transport calls back into during setup."""
    get_config: Callable[[], TransportConfig]
    get_verification_code: Callable[[], str]
    get_storage_password: Callable[[], str]
    registration_done: Callable[[], None]


class MessagingTransport(ABC):
    """Base class for secure messaging transports."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport name for logging."""
        pass

    @abstractmethod
    async def setup(self, callbacks: TransportCallbacks):
        """Connect, registering and provisioning keys if needed."""
        pass

    @abstractmethod
    async def send(self, number: str, message: str):
        pass

    @abstractmethod
    async def send_attachment(self, number: str, message: str, attachment: BinaryIO, filename: str):
        pass

    @abstractmethod
    async def listen(self, on_message: MessageHandler):
        """Deliver inbound messages to on_message until failure or cancellation."""
        pass

    @abstractmethod
    async def fetch_attachment(self, attachment: InboundAttachment) -> bytes:
        pass

    async def close(self):
        pass
