"""Backup and restore pipelines."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..adb.command import AdbCommand
from ..archive.abe import AbeTool
from ..archive.transcoder import ArchiveTranscoder, ExtractResult
from ..config import AdbackupConfig
from ..errors import ADBError
from ..store.blob_store import BlobStore
from ..util.logging import get_logger
from ..util.paths import ensure_directory
from .options import BackupOptions

logger = get_logger(__name__)

CONTAINER_SUFFIX = ".ab"


@dataclass
class BackupResult:
    """Outcome of a backup run."""

    device_id: str
    version: int
    container: Path
    extracted: Optional[ExtractResult] = None


class BackupExecutor:
    """Sequences device, transcoder and store for one device.

    Backup: ``adb backup`` writes ``<device_id>.ab``, which is optionally
    extracted into application archives and then stored as a new version.
    Restore: the latest (or a chosen) version is written back to
    ``<device_id>.ab`` and handed to ``adb restore``.
    """

    def __init__(
        self,
        device_id: str,
        store: BlobStore,
        config: Optional[AdbackupConfig] = None,
        transcoder: Optional[ArchiveTranscoder] = None
    ):
        self.device_id = device_id
        self.store = store
        self.config = config or AdbackupConfig()
        self.transcoder = transcoder or ArchiveTranscoder(
            AbeTool(self.config.abe_jar, self.config.java_path),
            show_progress=self.config.backup.show_progress
        )

    @property
    def container_path(self) -> Path:
        """Location of the intermediate ``.ab`` container."""
        return self.config.work_dir / f"{self.device_id}{CONTAINER_SUFFIX}"

    def _command(self, name: str) -> AdbCommand:
        return AdbCommand(name, adb_path=self.config.adb_path).with_device_id(self.device_id)

    def backup(
        self,
        options: BackupOptions,
        password: str = "",
        extract_to: Optional[Path] = None
    ) -> BackupResult:
        """Back up the device and store the container as a new version.

        Args:
            options: What ``adb backup`` should include
            password: Backup password entered on the device, used for extraction
            extract_to: Extract the container into this directory before storing it
        """
        container = self.container_path
        ensure_directory(container.parent)

        logger.info(f"Starting backup of {self.device_id}, confirm it on the device")
        self._command("backup").with_args(["-f", str(container)] + options.to_args()).execute()

        if not container.is_file():
            raise ADBError(f"adb backup did not produce {container}")

        extracted = None
        if extract_to is not None:
            extracted = self.transcoder.extract(container, extract_to, password)

        version = self.store.insert(container)

        if not self.config.backup.keep_container:
            container.unlink()

        logger.info(f"Backup of {self.device_id} stored as version {version}")
        return BackupResult(
            device_id=self.device_id,
            version=version,
            container=container,
            extracted=extracted
        )

    def restore(self, version: Optional[int] = None) -> int:
        """Restore the latest (or the given) stored backup to the device.

        Returns:
            The version that was restored
        """
        container = self.container_path

        if version is None:
            version = self.store.retrieve_latest(container)
        else:
            self.store.retrieve_version(version, container)

        logger.info(f"Restoring version {version} to {self.device_id}, confirm it on the device")
        try:
            self._command("restore").with_arg(str(container)).execute()
        finally:
            if not self.config.backup.keep_container:
                container.unlink(missing_ok=True)

        return version
