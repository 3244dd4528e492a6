"""Contact directory backed by the contact file naming convention.

A contact is a file named "<display name> <number>.textsecure" under the
contacts root. The same stem names the contact's attachment directory.
"""

import logging
import re
from pathlib import Path

from ciphergate.config import CONTACT_EXT, GatewayConfig
from ciphergate.errors import ForbiddenPath, InvalidContact, InvalidNumber
from ciphergate.models import ContactRecord, is_valid_number
from ciphergate.paths import relative_path

log = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"

# Single source of truth for the naming grammar
FILENAME_PATTERN = re.compile(
    r'(?P<stem>(?P<name>[^/]*) (?P<number>(?:\+|00)[0-9]+))\.' + re.escape(CONTACT_EXT)
)


def identity_to_filename(display_name: str, number: str) -> str:
    """Encode a contact identity as its history file name."""
    if not is_valid_number(number):
        raise InvalidNumber(f"invalid contact number format: {number}")
    if "/" in display_name or "\x00" in display_name:
        raise InvalidContact(f"invalid contact name: {display_name!r}")
    return f"{display_name} {number}.{CONTACT_EXT}"


def filename_to_identity(filename: str) -> tuple[str, str]:
    """Decode a history file name into (display_name, number)."""
    match = FILENAME_PATTERN.fullmatch(filename)
    if not match:
        raise InvalidContact("invalid contact")
    return match.group("name"), match.group("number")


class ContactDirectory:
    """Resolves contact files and bare numbers to ContactRecords."""

    def __init__(self, config: GatewayConfig):
        self.storage_root = config.mount_point
        self.root = config.contacts_path
        self.attachments_root = config.attachments_path

    def _record(self, display_name: str, number: str, history_path: Path) -> ContactRecord:
        return ContactRecord(
            display_name=display_name,
            number=number,
            history_path=history_path,
            attachment_dir=self.attachments_root / f"{display_name} {number}",
        )

    def resolve_by_path(self, path: Path) -> ContactRecord:
        """Resolve an existing (or prospective) contact file path."""
        path = Path(path)
        resolved = path.resolve()

        # Must sit directly in the contacts root and stay inside storage
        if resolved.parent != self.root.resolve():
            raise InvalidContact("invalid contact")
        try:
            relative_path(self.storage_root, resolved)
        except ForbiddenPath as e:
            raise InvalidContact(f"invalid contact: {e.message}") from e

        display_name, number = filename_to_identity(resolved.name)
        return self._record(display_name, number, resolved)

    def resolve_by_number(self, number: str) -> ContactRecord:
        """Find the contact file for a number, or synthesize an Unknown one.

        The Unknown record is not written to disk; its history file is
        created by the first append.
        """
        if not is_valid_number(number):
            raise InvalidNumber(f"invalid contact number format: {number}")

        self.root.mkdir(parents=True, exist_ok=True, mode=0o700)

        matches = []
        for candidate in sorted(self.root.glob(f"* {number}.{CONTACT_EXT}")):
            try:
                _, candidate_number = filename_to_identity(candidate.name)
            except InvalidContact:
                continue
            if candidate_number == number:
                matches.append(candidate)

        if not matches:
            return self._record(UNKNOWN_NAME, number, self.root / identity_to_filename(UNKNOWN_NAME, number))

        if len(matches) > 1:
            log.warning(f"[contacts] {len(matches)} contact files for {number}, using {matches[0].name}")
        return self.resolve_by_path(matches[0])
