"""Exception hierarchy for adbackup.

Every error raised by the package derives from ``AdbackupError`` so the CLI
can report it at a single boundary.
"""

from pathlib import Path
from typing import Union


class AdbackupError(Exception):
    """Base exception for all adbackup errors."""
    pass


class ADBError(AdbackupError):
    """ADB command execution error."""
    pass


class ADBNotFound(ADBError):
    """The adb executable could not be started."""
    pass


class ExternalToolMissing(AdbackupError):
    """The backup encryption tool (abe.jar or java) is not available."""
    
    def __init__(self, tool: Union[str, Path]):
        super().__init__(f"Cannot pack/unpack backup without {tool}")
        self.tool = str(tool)


class ExternalToolFailure(AdbackupError):
    """The backup encryption tool exited with an error."""
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TranscoderError(AdbackupError):
    """Archive transcoding could not be started or published."""
    pass


class MigrationError(AdbackupError):
    """Base class for schema migration failures."""
    pass


class UnknownDatabaseVersion(MigrationError):
    """The store was written by a newer build."""
    
    def __init__(self, version: int):
        super().__init__(f"unknown database version: {version}")
        self.version = version


class NoMigrationFunction(MigrationError):
    """No upgrade step is registered for an intermediate version."""
    
    def __init__(self, version: int):
        super().__init__(f"no migration function for version {version} implemented")
        self.version = version


class MissingVersionRecord(MigrationError):
    """The schema version table exists but holds no row."""
    
    def __init__(self):
        super().__init__("schema version table is empty")


class StoreError(AdbackupError):
    """Base class for blob store failures."""
    pass


class StoreNotFound(StoreError):
    """The file backing an open store has disappeared."""
    
    def __init__(self, path: Union[str, Path]):
        super().__init__(f"Store file not found: {path}")
        self.path = Path(path)


class EmptyStore(StoreError):
    """The store holds no backup yet."""
    
    def __init__(self, path: Union[str, Path]):
        super().__init__(f"Store contains no backups: {path}")
        self.path = Path(path)


class VersionNotFound(StoreError):
    """A requested backup version does not exist."""
    
    def __init__(self, version: int):
        super().__init__(f"Backup version not found: {version}")
        self.version = version
