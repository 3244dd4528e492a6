import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel


# Canonical international format: leading + or 00, digits only
NUMBER_PATTERN = re.compile(r'(?:\+|00)[0-9]+')

# Minute resolution, e.g. "Jan 02 15:04"
TIME_FORMAT = "%b %d %H:%M"


def is_valid_number(number: str) -> bool:
    return bool(number) and NUMBER_PATTERN.fullmatch(number) is not None


class SendRequest(BaseModel):
    """Outbound message request."""
    contact: str
    msg: str
    attachment: Optional[str] = None


class HistoryRequest(BaseModel):
    """History fetch request."""
    contact: str


class APIResponse(BaseModel):
    """Response envelope shared by all gateway endpoints."""
    status: str  # OK, KO
    response: Optional[str] = None


class Direction(str, Enum):
    OUTBOUND = ">"
    INBOUND = "<"


@dataclass(frozen=True)
class ContactRecord:
    """Identity and storage locations for one conversation."""
    display_name: str
    number: str
    history_path: Path
    attachment_dir: Path

    @property
    def label(self) -> str:
        return f"{self.display_name} {self.number}"


@dataclass
class HistoryEntry:
    """One line of a conversation log."""
    timestamp: datetime
    direction: Direction
    body: str

    @classmethod
    def outbound(cls, body: str, timestamp: Optional[datetime] = None) -> "HistoryEntry":
        return cls(timestamp=timestamp or datetime.now(), direction=Direction.OUTBOUND, body=body)

    @classmethod
    def inbound(cls, body: str, timestamp: Optional[datetime] = None) -> "HistoryEntry":
        return cls(timestamp=timestamp or datetime.now(), direction=Direction.INBOUND, body=body)

    def format(self) -> str:
        # Embedded line breaks would split the entry across two log lines
        body = " ".join(self.body.splitlines())
        return f"{self.timestamp.strftime(TIME_FORMAT)} {self.direction.value} {body}\n"


@dataclass
class InboundAttachment:
    """Attachment descriptor received from the transport."""
    id: str
    content_type: str = ""
    filename: Optional[str] = None
    size: Optional[int] = None


@dataclass
class InboundMessage:
    """Message delivered by the transport listener."""
    source: str
    body: str
    timestamp: datetime
    attachments: list[InboundAttachment] = field(default_factory=list)


@dataclass
class Notice:
    """User-facing status notification."""
    id: int
    message: str
    level: str = "notice"  # notice, error
    created: datetime = field(default_factory=datetime.now)
