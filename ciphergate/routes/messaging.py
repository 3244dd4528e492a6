"""Messaging routes: send, history, download."""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

from ciphergate.config import CONTACT_EXT
from ciphergate.errors import InvalidRequest
from ciphergate.models import APIResponse, HistoryRequest, SendRequest

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/textsecure", tags=["textsecure"])


@router.post("/send", response_model=APIResponse)
async def send_message(req: SendRequest, request: Request):
    """
    POST /api/textsecure/send
    Body: {"contact": "/textsecure/contacts/Alice +15550001.textsecure", "msg": "hello"}

    Optional "attachment" is a storage-relative path to a file to send along.
    """
    await request.app.state.relay.send(req.contact, req.msg, req.attachment)
    return APIResponse(status="OK", response=None)


@router.get("/history", response_model=APIResponse)
async def download_history(request: Request, contact: Optional[str] = None):
    """Most recent conversation history for a contact, as plain text."""
    if not contact:
        raise InvalidRequest("contact required")
    history = request.app.state.relay.read_history(contact)
    return APIResponse(status="OK", response=history)


@router.post("/history", response_model=APIResponse)
async def download_history_json(req: HistoryRequest, request: Request):
    """
    POST /api/textsecure/history
    Body: {"contact": "/textsecure/contacts/Alice +15550001.textsecure"}
    """
    history = request.app.state.relay.read_history(req.contact)
    return APIResponse(status="OK", response=history)


@router.get("/download")
async def download_file(path: str, request: Request):
    """Download a stored file, e.g. an attachment referenced in history."""
    target = request.app.state.relay.attachments.locate(path)
    if not target.is_file():
        raise InvalidRequest(f"no such file: {path}")
    log.info(f"Download {target.name}")
    return FileResponse(target, filename=target.name)


@router.get("/info")
async def gateway_info():
    return {
        "name": "TextSecure",
        "description": "Signal protocol messaging gateway",
        "msg": True,
        "enc": False,
        "dec": False,
        "sig": False,
        "extension": CONTACT_EXT,
    }
