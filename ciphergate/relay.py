"""Message relay between the API, the transport and contact storage."""

import io
import logging
from typing import Optional

from ciphergate.attachments import AttachmentStore
from ciphergate.config import GatewayConfig
from ciphergate.contacts import ContactDirectory
from ciphergate.errors import GatewayError, InvalidRequest, StorageFailure
from ciphergate.history import HistoryStore
from ciphergate.models import ContactRecord, HistoryEntry, InboundMessage
from ciphergate.notifications import NotificationCenter
from ciphergate.paths import absolute_path
from ciphergate.transport import MessagingTransport

log = logging.getLogger(__name__)


class MessageRelay:
    """Outbound sends and history reads, plus the inbound message handler."""

    def __init__(
        self,
        config: GatewayConfig,
        transport: MessagingTransport,
        contacts: ContactDirectory,
        history: HistoryStore,
        attachments: AttachmentStore,
        notifications: NotificationCenter,
    ):
        self.config = config
        self.transport = transport
        self.contacts = contacts
        self.history = history
        self.attachments = attachments
        self.notifications = notifications

    def resolve_contact(self, contact: str) -> ContactRecord:
        """Resolve a storage-relative contact file path from a request."""
        if not contact:
            raise InvalidRequest("contact required")
        return self.contacts.resolve_by_path(absolute_path(self.config.mount_point, contact))

    async def send(self, contact: str, msg: str, attachment: Optional[str] = None):
        """Send msg (and optionally a stored file) and record it in history.

        Nothing is written to history unless the transport accepted the send.
        """
        record = self.resolve_contact(contact)

        if attachment:
            attachment_path = self.attachments.locate(attachment)
            try:
                handle = open(attachment_path, "rb")
            except OSError as e:
                raise StorageFailure(f"failed to open attachment: {e}") from e
            with handle:
                await self.transport.send_attachment(record.number, msg, handle, attachment_path.name)
            body = f"[{attachment_path.name}] {msg}"
        else:
            await self.transport.send(record.number, msg)
            body = msg

        self.history.append(record, HistoryEntry.outbound(body))
        log.info(f"[SENT] {record.label}: {msg[:50]}")

    def read_history(self, contact: str) -> str:
        record = self.resolve_contact(contact)
        return self.history.read_tail(record)

    async def handle_inbound(self, message: InboundMessage):
        """Listener callback: record an inbound message and its attachments."""
        log.info(f"[RECEIVED] message from {message.source}")
        self.notifications.notify_transient(f"received message from {message.source}")

        try:
            record = self.contacts.resolve_by_number(message.source)
        except GatewayError as e:
            self.notifications.report_error(e)
            return

        if message.body:
            try:
                self.history.append(record, HistoryEntry.inbound(message.body, message.timestamp))
            except StorageFailure as e:
                self.notifications.report_error(e)

        for attachment in message.attachments:
            try:
                data = await self.transport.fetch_attachment(attachment)
                name = self.attachments.save(record, io.BytesIO(data))
                self.history.append(record, HistoryEntry.inbound(f"[{name}]", message.timestamp))
            except GatewayError as e:
                self.notifications.report_error(e)
