"""ADB module initialization."""

from ..errors import ADBError, ADBNotFound
from .command import AdbCommand
from .device import Device, list_devices, parse_devices
from .package import list_apps, parse_list_apps
from .transfer import pull, push

__all__ = [
    # command
    "AdbCommand",
    "ADBError",
    "ADBNotFound",
    # device
    "Device",
    "list_devices",
    "parse_devices",
    # package
    "list_apps",
    "parse_list_apps",
    # transfer
    "pull",
    "push",
]
