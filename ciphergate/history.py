"""Append-only per-contact conversation logs."""

import logging
import os
from pathlib import Path

from ciphergate.config import HISTORY_SIZE
from ciphergate.errors import StorageFailure
from ciphergate.models import ContactRecord, HistoryEntry

log = logging.getLogger(__name__)


class HistoryStore:
    """Appends entries to contact history files and reads bounded tails.

    Each append is one write(2) on an O_APPEND descriptor, so concurrent
    appends to the same file never interleave within a line.
    """

    def __init__(self, max_bytes: int = HISTORY_SIZE):
        self.max_bytes = max_bytes

    def append(self, contact: ContactRecord, entry: HistoryEntry):
        line = entry.format().encode("utf-8")
        try:
            fd = os.open(contact.history_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        except OSError as e:
            log.error(f"Failed to open history for {contact.label}: {e}")
            raise StorageFailure(f"failed to open history: {e}") from e

        try:
            written = os.write(fd, line)
        except OSError as e:
            log.error(f"Failed to write history for {contact.label}: {e}")
            raise StorageFailure(f"failed to write history: {e}") from e
        finally:
            os.close(fd)

        if written != len(line):
            raise StorageFailure(f"short history write ({written}/{len(line)} bytes)")

    def read_tail(self, contact: ContactRecord, max_bytes: int = None) -> str:
        """Return at most max_bytes of the most recent history.

        When the file is larger than the bound, the partial first line is
        dropped so the result always starts at a line boundary.
        """
        return read_tail(contact.history_path, max_bytes or self.max_bytes)


def read_tail(path: Path, max_bytes: int = HISTORY_SIZE) -> str:
    try:
        with open(path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            truncated = size > max_bytes
            if truncated:
                f.seek(size - max_bytes)
            data = f.read()
    except OSError as e:
        raise StorageFailure(f"failed to read history: {e}") from e

    if truncated:
        newline = data.find(b"\n")
        if newline >= 0:
            data = data[newline + 1:]

    return data.decode("utf-8", errors="replace")
