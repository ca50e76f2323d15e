"""Installed application listing."""

from typing import List, Optional

from ..util.logging import get_logger
from .command import AdbCommand

logger = get_logger(__name__)

# Platform packages that are never worth listing as user applications
PLATFORM_PACKAGE_PREFIXES = ("package:com.android.", "package:com.google.android.")


def parse_list_apps(output: str) -> List[str]:
    """Parse ``pm list packages`` output, dropping platform packages."""
    packages = []
    
    for line in output.split("\n"):
        line = line.strip()
        if line.startswith(PLATFORM_PACKAGE_PREFIXES):
            continue
        
        parts = line.split(":")
        if len(parts) > 1 and parts[1]:
            packages.append(parts[1])
    
    return packages


def list_apps(device_id: Optional[str] = None, adb_path: str = "adb") -> List[str]:
    """List the installed, non-platform applications of a device."""
    output = (
        AdbCommand("shell", adb_path=adb_path)
        .with_args(["pm", "list", "packages"])
        .with_device_id(device_id)
        .execute()
    )
    packages = parse_list_apps(output)
    logger.debug(f"Found {len(packages)} packages")
    return packages
