"""Per-contact attachment storage."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO

from ciphergate.config import GatewayConfig
from ciphergate.errors import StorageFailure
from ciphergate.models import ContactRecord
from ciphergate.paths import absolute_path, ensure_readable, relative_path

log = logging.getLogger(__name__)


class AttachmentStore:
    """Saves inbound blobs and locates files for outbound sends/downloads."""

    def __init__(self, config: GatewayConfig):
        self.config = config
        self.storage_root = config.mount_point

    def save(self, contact: ContactRecord, source: BinaryIO) -> str:
        """Write source into a new uniquely named file in the contact's
        attachment directory and return its storage-relative name."""
        try:
            contact.attachment_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
            fd, name = tempfile.mkstemp(prefix="attachment_", dir=contact.attachment_dir)
        except OSError as e:
            raise StorageFailure(f"failed to create attachment: {e}") from e

        try:
            with os.fdopen(fd, "wb") as output:
                shutil.copyfileobj(source, output)
        except OSError as e:
            Path(name).unlink(missing_ok=True)
            raise StorageFailure(f"failed to write attachment: {e}") from e

        log.info(f"saved attachment from {contact.display_name} {contact.number}")
        return relative_path(self.storage_root, Path(name))

    def locate(self, path: str) -> Path:
        """Resolve a storage-relative path for reading.

        Refuses traversal outside the storage root and anything inside
        private key storage.
        """
        target = absolute_path(self.storage_root, path)
        return ensure_readable(self.config, target)
