import asyncio
from pathlib import Path

import pytest

from ciphergate.attachments import AttachmentStore
from ciphergate.config import GatewayConfig
from ciphergate.contacts import ContactDirectory
from ciphergate.errors import StorageFailure, TransportFailure
from ciphergate.history import HistoryStore
from ciphergate.notifications import NotificationCenter
from ciphergate.prompts import Prompter
from ciphergate.registration import RegistrationState
from ciphergate.relay import MessageRelay
from ciphergate.transport import MessagingTransport
from ciphergate.volume import VolumeManager


class FakeTransport(MessagingTransport):
    """Records outbound calls; listen() blocks until cancelled."""

    def __init__(self, listen_errors: int = 0):
        self.sent: list[tuple[str, str]] = []
        self.sent_attachments: list[tuple[str, str, bytes, str]] = []
        self.attachment_data: dict[str, bytes] = {}
        self.setup_error = None
        self.send_error = None
        self.register_on_setup = False
        self.callbacks = None
        self.setup_config = None
        self.verification_code = None
        self.listen_errors = listen_errors
        self.listen_calls = 0
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def setup(self, callbacks):
        self.callbacks = callbacks
        self.setup_config = callbacks.get_config()
        if self.setup_error:
            raise self.setup_error
        if self.register_on_setup:
            self.verification_code = callbacks.get_verification_code()
            callbacks.registration_done()

    async def send(self, number, message):
        if self.send_error:
            raise self.send_error
        self.sent.append((number, message))

    async def send_attachment(self, number, message, attachment, filename):
        if self.send_error:
            raise self.send_error
        self.sent_attachments.append((number, message, attachment.read(), filename))

    async def listen(self, on_message):
        self.listen_calls += 1
        if self.listen_calls <= self.listen_errors:
            raise TransportFailure("connection lost")
        await asyncio.Event().wait()

    async def fetch_attachment(self, attachment):
        try:
            return self.attachment_data[attachment.id]
        except KeyError:
            raise TransportFailure(f"attachment {attachment.id} unavailable")

    async def close(self):
        self.closed = True


class ScriptedPrompter(Prompter):
    """Answers prompts from a fixed script."""

    def __init__(self, lines, passwords=("volume-secret",)):
        self.lines = list(lines)
        self.passwords = list(passwords)
        self.prompts: list[str] = []

    def prompt_line(self, message):
        self.prompts.append(message)
        if not self.lines:
            raise AssertionError(f"unexpected prompt: {message!r}")
        return self.lines.pop(0)

    def prompt_password(self, message):
        self.prompts.append(message)
        return self.passwords.pop(0)


class FakeVolume(VolumeManager):
    def __init__(self, fail_unlock: bool = False):
        self.fail_unlock = fail_unlock
        self.unlocked: list[tuple[str, str, bool]] = []
        self.lock_calls = 0

    def unlock(self, volume, password, dispose=False):
        if self.fail_unlock:
            raise StorageFailure(f"failed to unlock {volume}: bad password")
        self.unlocked.append((volume, password, dispose))

    def lock(self):
        self.lock_calls += 1


@pytest.fixture
def config(tmp_path) -> GatewayConfig:
    mount = tmp_path / "mnt"
    mount.mkdir()
    return GatewayConfig(
        mount_point=mount,
        test_mode=True,
        notification_ttl=0.05,
        listener_backoff_initial=0.01,
        listener_backoff_max=0.05,
        sinks={"console": {"enabled": False}},
    )


@pytest.fixture
def contacts(config) -> ContactDirectory:
    return ContactDirectory(config)


@pytest.fixture
def history() -> HistoryStore:
    return HistoryStore()


@pytest.fixture
def attachments(config) -> AttachmentStore:
    return AttachmentStore(config)


@pytest.fixture
def make_contact(config):
    """Create a contact file and return its absolute path."""
    def _make(name: str = "Alice", number: str = "+15550001") -> Path:
        config.contacts_path.mkdir(parents=True, exist_ok=True)
        path = config.contacts_path / f"{name} {number}.textsecure"
        path.touch()
        return path
    return _make


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def notifications(config) -> NotificationCenter:
    return NotificationCenter(ttl=config.notification_ttl)


@pytest.fixture
def relay(config, transport, contacts, history, attachments, notifications) -> MessageRelay:
    return MessageRelay(
        config=config,
        transport=transport,
        contacts=contacts,
        history=history,
        attachments=attachments,
        notifications=notifications,
    )


@pytest.fixture
def registered(config) -> RegistrationState:
    state = RegistrationState(storage_path=config.storage_path)
    state.save_number("+15551234")
    state.mark_provisioned()
    return state
