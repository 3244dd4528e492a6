"""Persisted registration state under the encrypted volume.

Registration is one-shot: once the last resort key marker exists, the
gateway refuses to register again until the storage directory is cleared.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from ciphergate.errors import StorageFailure

log = logging.getLogger(__name__)

LAST_RESORT_KEY_ID = 0xFFFFFF
SENTINEL_NAME = Path("prekeys") / f"{LAST_RESORT_KEY_ID:09d}"
NUMBER_NAME = "number"


def atomic_write(path: Path, data: bytes, mode: int = 0o600):
    """Write data to path via a temp file in the same directory + rename."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    except OSError as e:
        raise StorageFailure(f"failed to write {path}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except OSError as e:
        Path(tmp).unlink(missing_ok=True)
        raise StorageFailure(f"failed to write {path}: {e}") from e


@dataclass
class RegistrationState:
    storage_path: Path
    registered_number: Optional[str] = None
    provisioned: bool = False

    @property
    def number_path(self) -> Path:
        return self.storage_path / NUMBER_NAME

    @property
    def sentinel_path(self) -> Path:
        return self.storage_path / SENTINEL_NAME

    @classmethod
    def load(cls, storage_path: Path) -> "RegistrationState":
        state = cls(storage_path=Path(storage_path))
        state.reload()
        return state

    def reload(self):
        """Re-read the number file and sentinel marker from disk."""
        self.provisioned = self.sentinel_path.exists()
        try:
            self.registered_number = self.number_path.read_text()
        except FileNotFoundError:
            self.registered_number = None
        except OSError as e:
            raise StorageFailure(f"failed to read registered number: {e}") from e

    def needs_registration(self) -> bool:
        return not self.provisioned

    def save_number(self, number: str):
        """Persist the captured number as entered."""
        atomic_write(self.number_path, number.encode("utf-8"))
        self.registered_number = number
        log.info(f"Saved registration number to {self.number_path}")

    def mark_provisioned(self):
        """Write the last resort key marker once provisioning completes."""
        stamp = f"{self.registered_number or ''} {datetime.now().isoformat()}\n"
        atomic_write(self.sentinel_path, stamp.encode("utf-8"))
        self.provisioned = True
