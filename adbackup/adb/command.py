"""ADB command builder and executor."""

import subprocess
from dataclasses import dataclass, field, replace
from typing import List, Optional

from ..errors import ADBError, ADBNotFound
from ..util.logging import TRACE, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdbCommand:
    """A single adb invocation: ``adb [-s DEVICE] COMMAND ARGS...``."""
    
    command: str
    device_id: Optional[str] = None
    args: List[str] = field(default_factory=list)
    adb_path: str = "adb"
    
    def with_args(self, args: List[str]) -> "AdbCommand":
        """Return a copy with ``args`` replacing the current arguments."""
        return replace(self, args=[str(arg) for arg in args])
    
    def with_arg(self, arg: str) -> "AdbCommand":
        """Return a copy with ``arg`` appended to the arguments."""
        return replace(self, args=self.args + [str(arg)])
    
    def with_device_id(self, device_id: Optional[str]) -> "AdbCommand":
        """Return a copy targeting ``device_id`` (``None`` lets adb pick)."""
        return replace(self, device_id=device_id)
    
    def argv(self) -> List[str]:
        """Build the full argument vector."""
        cmd = [self.adb_path]
        
        if self.device_id:
            cmd += ["-s", self.device_id]
        
        cmd.append(self.command)
        cmd += self.args
        return cmd
    
    def execute(self) -> str:
        """Run the command and return its standard output.
        
        Blocks until adb exits; there is no timeout because ``adb backup``
        and ``adb restore`` wait for confirmation on the device.
        
        Raises:
            ADBNotFound: If the adb executable cannot be started
            ADBError: If adb exits with a non-zero status
        """
        cmd = self.argv()
        logger.debug(f"Running ADB command: {' '.join(cmd)}")
        
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                check=True
            )
        except subprocess.CalledProcessError as e:
            error_msg = f"Error executing command {' '.join(cmd)}: {(e.stderr or '').strip()}"
            logger.error(error_msg)
            raise ADBError(error_msg) from e
        except FileNotFoundError as e:
            raise ADBNotFound(
                f"ADB not found at '{self.adb_path}'. Please install Android platform tools."
            ) from e
        
        logger.log(TRACE, f"output message from command: {result.stdout}")
        return result.stdout
