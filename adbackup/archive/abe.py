"""Runner for the Android Backup Extractor (abe.jar).

The ``.ab`` container produced by ``adb backup`` is a compressed and
optionally encrypted tar stream. Converting it to and from a plain tar
archive is delegated to abe.jar, run through a Java runtime.
"""

import subprocess
from pathlib import Path
from typing import Optional, Union

from ..errors import ExternalToolFailure, ExternalToolMissing
from ..util.logging import TRACE, get_logger

logger = get_logger(__name__)

PACK = "pack"
UNPACK = "unpack"

DEFAULT_JAR_NAME = "abe.jar"


class AbeTool:
    """Invokes ``java -jar abe.jar MODE INPUT OUTPUT PASSWORD``."""
    
    def __init__(self, jar_path: Optional[Union[str, Path]] = None, java_path: str = "java"):
        """Initialize the runner.
        
        Args:
            jar_path: Location of abe.jar; relative paths are resolved
                against the working directory at call time
            java_path: Java executable
        """
        self.jar_path = Path(jar_path) if jar_path else Path(DEFAULT_JAR_NAME)
        self.java_path = java_path
    
    def resolve_jar(self) -> Path:
        """Return the absolute jar location, failing if it does not exist."""
        jar = self.jar_path if self.jar_path.is_absolute() else Path.cwd() / self.jar_path
        if not jar.is_file():
            raise ExternalToolMissing(jar)
        return jar
    
    def run(self, mode: str, input_path: Path, output_path: Path, password: str) -> str:
        """Run abe.jar and return its standard output.
        
        Raises:
            ExternalToolMissing: If abe.jar or the Java runtime is missing
            ExternalToolFailure: If abe.jar exits with a non-zero status
        """
        if mode not in (PACK, UNPACK):
            raise ValueError(f"Unknown abe mode: {mode}")
        
        jar = self.resolve_jar()
        cmd = [self.java_path, "-jar", str(jar), mode, str(input_path), str(output_path), password]
        # Never log the password
        printable = " ".join(cmd[:-1] + ["****"])
        
        logger.log(TRACE, f"Running {printable}")
        
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
        except FileNotFoundError as e:
            raise ExternalToolMissing(self.java_path) from e
        
        if result.returncode != 0:
            raise ExternalToolFailure(f"Error executing {printable}.\n {result.stderr}")
        
        logger.log(TRACE, f"output message from {printable}: {result.stdout}")
        return result.stdout
    
    def unpack(self, container: Path, archive: Path, password: str) -> str:
        """Decrypt ``container`` into the tar archive ``archive``."""
        return self.run(UNPACK, container, archive, password)
    
    def pack(self, archive: Path, container: Path, password: str) -> str:
        """Encrypt the tar archive ``archive`` into ``container``."""
        return self.run(PACK, archive, container, password)
