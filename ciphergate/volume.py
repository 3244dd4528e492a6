"""Encrypted volume management (LUKS via cryptsetup)."""

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from ciphergate.errors import StorageFailure

log = logging.getLogger(__name__)


class VolumeManager(ABC):
    """Unlocks and locks the encrypted volume holding gateway state."""

    @abstractmethod
    def unlock(self, volume: str, password: str, dispose: bool = False):
        """Unlock and mount the volume. Raises StorageFailure on error.

        With dispose set, the password is removed from the volume once used.
        """
        pass

    @abstractmethod
    def lock(self):
        """Unmount and close the volume."""
        pass


class LuksVolume(VolumeManager):
    """LUKS volume on an LVM volume group, mounted at the gateway mount point."""

    def __init__(self, mount_point: Path, volume_group: str = "lvmvolume", mapping: str = "ciphergate"):
        self.mount_point = Path(mount_point)
        self.volume_group = volume_group
        self.mapping = mapping

    def run_cmd(self, cmd: list[str], stdin: str = None, timeout: int = 60) -> tuple[bool, str]:
        try:
            result = subprocess.run(cmd, input=stdin, capture_output=True, text=True, timeout=timeout)
            return result.returncode == 0, result.stdout + result.stderr
        except subprocess.TimeoutExpired:
            log.warning(f"Command timed out: {' '.join(cmd)}")
            return False, "timeout"
        except OSError as e:
            return False, str(e)

    def _device(self, volume: str) -> str:
        if not volume or "/" in volume:
            raise StorageFailure(f"invalid volume name: {volume!r}")
        return f"/dev/{self.volume_group}/{volume}"

    def unlock(self, volume: str, password: str, dispose: bool = False):
        device = self._device(volume)

        ok, output = self.run_cmd(
            ["cryptsetup", "--key-file=-", "luksOpen", device, self.mapping], stdin=password
        )
        if not ok:
            raise StorageFailure(f"failed to unlock {volume}: {output.strip()}")

        self.mount_point.mkdir(parents=True, exist_ok=True)
        ok, output = self.run_cmd(["mount", f"/dev/mapper/{self.mapping}", str(self.mount_point)])
        if not ok:
            raise StorageFailure(f"failed to mount {volume}: {output.strip()}")

        log.info(f"Unlocked {volume} at {self.mount_point}")

        if dispose:
            ok, output = self.run_cmd(["cryptsetup", "--key-file=-", "luksRemoveKey", device], stdin=password)
            if not ok:
                raise StorageFailure(f"failed to dispose password for {volume}: {output.strip()}")
            log.warning(f"Password for {volume} disposed")

    def lock(self):
        ok, output = self.run_cmd(["umount", str(self.mount_point)])
        if not ok:
            log.warning(f"umount failed: {output.strip()}")
        ok, output = self.run_cmd(["cryptsetup", "luksClose", self.mapping])
        if not ok:
            log.warning(f"luksClose failed: {output.strip()}")
