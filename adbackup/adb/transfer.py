"""File transfer between the host and a device."""

from typing import Optional

from ..util.logging import get_logger
from .command import AdbCommand

logger = get_logger(__name__)


def pull(device_id: Optional[str], path: str, adb_path: str = "adb") -> str:
    """Pull a file or folder from the device into the current directory.
    
    File timestamps and modes are preserved (``-a``).
    """
    logger.info(f"Pulling {path}")
    return (
        AdbCommand("pull", adb_path=adb_path)
        .with_args([path, "-a"])
        .with_device_id(device_id)
        .execute()
    )


def push(device_id: Optional[str], src_path: str, dst_path: str, adb_path: str = "adb") -> str:
    """Push a local file or folder to the device."""
    logger.info(f"Pushing {src_path} -> {dst_path}")
    return (
        AdbCommand("push", adb_path=adb_path)
        .with_args([src_path, dst_path])
        .with_device_id(device_id)
        .execute()
    )
