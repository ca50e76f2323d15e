"""Connected device discovery."""

from dataclasses import dataclass
from typing import List

from ..util.logging import get_logger
from .command import AdbCommand

logger = get_logger(__name__)

DEVICE_LIST_HEADER = "List of devices attached"


@dataclass
class Device:
    """An adb-visible Android device."""
    
    id: str
    details: str
    
    @property
    def display_name(self) -> str:
        """Get a human-readable device name."""
        for item in self.details.split():
            if item.startswith("model:"):
                return f"{item[len('model:'):]} ({self.id})"
        return self.id


def parse_devices(output: str) -> List[Device]:
    """Parse the output of ``adb devices -l``.
    
    Only lines in the ``device`` state are returned; the header, blank
    lines and unauthorized or offline devices are skipped.
    """
    devices = []
    
    for line in output.splitlines():
        if DEVICE_LIST_HEADER in line or not line.strip():
            continue
        
        parts = line.split("device ", 1)
        if len(parts) == 2:
            devices.append(Device(id=parts[0].strip(), details=parts[1].strip()))
    
    return devices


def list_devices(adb_path: str = "adb") -> List[Device]:
    """List all connected devices."""
    output = AdbCommand("devices", adb_path=adb_path).with_arg("-l").execute()
    devices = parse_devices(output)
    logger.debug(f"Found {len(devices)} devices")
    return devices
