"""Storage path helpers: traversal and key storage guards."""

from pathlib import Path

from ciphergate.config import GatewayConfig
from ciphergate.errors import ForbiddenPath


def absolute_path(root: Path, path: str) -> Path:
    """Map a storage-relative request path to an absolute path under root.

    Leading slashes are treated as relative to root. Raises ForbiddenPath
    when the resolved path escapes root.
    """
    if not path:
        raise ForbiddenPath("empty path")
    root = Path(root).resolve()
    target = (root / str(path).lstrip("/")).resolve()
    if not target.is_relative_to(root):
        raise ForbiddenPath(f"path traversal detected: {path}")
    return target


def relative_path(root: Path, path: Path) -> str:
    """Inverse of absolute_path, used for names embedded in history."""
    root = Path(root).resolve()
    target = Path(path).resolve()
    if not target.is_relative_to(root):
        raise ForbiddenPath(f"path outside storage root: {path}")
    return str(target.relative_to(root))


def detect_key_path(config: GatewayConfig, path: Path) -> tuple[bool, bool]:
    """Classify a path against key storage.

    Returns (in_key_path, private): whether the resolved path lies under the
    key storage root, and whether it is inside a private key area there.
    """
    key_root = config.key_storage_root.resolve()
    target = Path(path).resolve()
    if not target.is_relative_to(key_root):
        return False, False
    parts = target.relative_to(key_root).parts
    return True, "private" in parts


def ensure_readable(config: GatewayConfig, path: Path) -> Path:
    """Refuse reads that resolve into private key storage."""
    in_key_path, private = detect_key_path(config, path)
    if in_key_path and private:
        raise ForbiddenPath("downloading private key(s) is not allowed")
    return Path(path).resolve()
