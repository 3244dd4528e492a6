"""Transport backed by a signal-cli REST API daemon.

The daemon keeps its data directory on the encrypted volume; this client
only talks HTTP to it. Inbound delivery polls /v1/receive.
"""

import asyncio
import base64
import logging
import mimetypes
from datetime import datetime
from typing import BinaryIO, Optional

import httpx

from ciphergate.errors import TransportFailure
from ciphergate.models import InboundAttachment, InboundMessage
from .base import MessageHandler, MessagingTransport, TransportCallbacks

log = logging.getLogger(__name__)


def parse_envelope(payload: dict) -> Optional[InboundMessage]:
    """Convert a received envelope into an InboundMessage.

    Receipts, typing indicators and sync messages carry no dataMessage and
    are skipped (None).
    """
    envelope = payload.get("envelope") or {}
    data = envelope.get("dataMessage")
    if not data:
        return None

    source = envelope.get("sourceNumber") or envelope.get("source") or ""
    millis = data.get("timestamp") or envelope.get("timestamp")
    timestamp = datetime.fromtimestamp(millis / 1000) if millis else datetime.now()

    attachments = [
        InboundAttachment(
            id=a["id"],
            content_type=a.get("contentType", ""),
            filename=a.get("filename"),
            size=a.get("size"),
        )
        for a in data.get("attachments") or []
        if a.get("id")
    ]
    return InboundMessage(
        source=source,
        body=data.get("message") or "",
        timestamp=timestamp,
        attachments=attachments,
    )


def attachment_data_uri(data: bytes, filename: str) -> str:
    mime = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};filename={filename};base64,{encoded}"


class SignalRestTransport(MessagingTransport):
    """Signal protocol transport via signal-cli-rest-api."""

    def __init__(
        self,
        api_url: str,
        receive_timeout: int = 10,
        poll_interval: float = 1.0,
        request_timeout: float = 30.0,
        client: httpx.AsyncClient = None,
    ):
        self._api_url = api_url.rstrip("/")
        self._receive_timeout = receive_timeout
        self._poll_interval = poll_interval
        self._request_timeout = request_timeout
        self._client = client
        self._number: Optional[str] = None

    @property
    def name(self) -> str:
        return "signal"

    @property
    def number(self) -> Optional[str]:
        return self._number

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._api_url, timeout=self._request_timeout)
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._http().request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TransportFailure(f"{self.name} {method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("error", resp.text)
            except ValueError:
                detail = resp.text
            raise TransportFailure(f"{self.name} {method} {path}: {resp.status_code} {detail}")
        return resp

    def _require_number(self) -> str:
        if not self._number:
            raise TransportFailure(f"{self.name} transport used before setup")
        return self._number

    async def _is_registered(self, number: str) -> bool:
        resp = await self._request("GET", "/v1/accounts")
        try:
            accounts = resp.json() or []
        except ValueError as e:
            raise TransportFailure(f"{self.name} returned invalid account list: {e}") from e
        return number in accounts

    async def setup(self, callbacks: TransportCallbacks):
        config = callbacks.get_config()
        self._number = config.number
        log.debug(f"[{self.name}] setup for {config.number} (storage {config.storage_dir}, log level {config.log_level})")

        if await self._is_registered(config.number):
            log.info(f"[{self.name}] {config.number} already known to daemon")
            return

        log.info(f"[{self.name}] requesting {config.verification_type} verification for {config.number}")
        await self._request(
            "POST",
            f"/v1/register/{config.number}",
            json={"use_voice": config.verification_type == "voice"},
        )

        # Operator prompts block, keep them off the event loop
        code = (await asyncio.to_thread(callbacks.get_verification_code)).strip()
        body = {}
        pin = callbacks.get_storage_password()
        if pin:
            body["pin"] = pin

        await self._request("POST", f"/v1/register/{config.number}/verify/{code}", json=body)
        callbacks.registration_done()

    async def send(self, number: str, message: str):
        await self._request(
            "POST",
            "/v2/send",
            json={"message": message, "number": self._require_number(), "recipients": [number]},
        )

    async def send_attachment(self, number: str, message: str, attachment: BinaryIO, filename: str):
        try:
            data = attachment.read()
        except OSError as e:
            raise TransportFailure(f"failed to read attachment {filename}: {e}") from e

        await self._request(
            "POST",
            "/v2/send",
            json={
                "message": message,
                "number": self._require_number(),
                "recipients": [number],
                "base64_attachments": [attachment_data_uri(data, filename)],
            },
        )

    async def listen(self, on_message: MessageHandler):
        number = self._require_number()
        while True:
            resp = await self._request(
                "GET",
                f"/v1/receive/{number}",
                params={"timeout": self._receive_timeout},
                timeout=self._receive_timeout + self._request_timeout,
            )
            try:
                payloads = resp.json() or []
            except ValueError as e:
                raise TransportFailure(f"{self.name} returned invalid envelopes: {e}") from e

            for payload in payloads:
                msg = parse_envelope(payload)
                if msg is not None:
                    await on_message(msg)

            await asyncio.sleep(self._poll_interval)

    async def fetch_attachment(self, attachment: InboundAttachment) -> bytes:
        resp = await self._request("GET", f"/v1/attachments/{attachment.id}")
        return resp.content

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
