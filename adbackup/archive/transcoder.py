"""Conversion between backup containers and per-application archive trees.

An extracted backup is laid out as ``<output>/<category>/<application>.tar``:
the top level holds the backup domains found in the container (``apps``,
``shared``, ...) and every application directory inside a category is
collapsed into a single tar archive named after it. Packing reverses this.

Both directions work inside a scratch directory next to their destination
and only publish the result once every step has succeeded, so a failure
never leaves a half-converted tree behind.
"""

import errno
import os
import shutil
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from tqdm import tqdm

from ..errors import TranscoderError
from ..util.logging import TRACE, get_logger
from ..util.paths import is_representable_name, make_scratch_dir, remove_tree
from .abe import AbeTool

logger = get_logger(__name__)

ARCHIVE_SUFFIX = ".tar"
INTERMEDIATE_ARCHIVE = "backup.tar"

# Errors the OS raises for names it cannot create; anything else stays fatal
UNREPRESENTABLE_ERRNOS = frozenset({
    errno.EINVAL,
    errno.EILSEQ,
    errno.ENAMETOOLONG,
    errno.ENOTDIR,
    errno.EISDIR,
    errno.EEXIST,
})

PathLike = Union[str, Path]


@dataclass
class ExtractResult:
    """Outcome of an extraction."""

    output_directory: Path
    application_archives: List[Path] = field(default_factory=list)
    skipped_entries: List[str] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        """Number of container entries that could not be written to disk."""
        return len(self.skipped_entries)

    @property
    def categories(self) -> List[str]:
        """Names of the category directories that hold application archives."""
        return sorted({archive.parent.name for archive in self.application_archives})


class ArchiveTranscoder:
    """Extracts containers into application archives and packs them back."""

    def __init__(self, abe: Optional[AbeTool] = None, show_progress: bool = False):
        self.abe = abe or AbeTool()
        self.show_progress = show_progress

    def extract(self, input_container: PathLike, output_directory: PathLike, password: str) -> ExtractResult:
        """Extract a container into a tree of per-application archives.

        Entries whose names cannot be created on this system are skipped
        and listed in the result instead of aborting the extraction.

        Raises:
            TranscoderError: If ``output_directory`` exists and is not empty
            ExternalToolMissing: If abe.jar cannot be found
            ExternalToolFailure: If abe.jar fails to decrypt the container
        """
        input_container = Path(input_container)
        output_directory = Path(output_directory)
        self._check_destination(output_directory)

        logger.info(f"Extracting {input_container} -> {output_directory}")
        result = ExtractResult(output_directory=output_directory)
        scratch = make_scratch_dir(output_directory)

        try:
            intermediate = scratch / INTERMEDIATE_ARCHIVE
            tree = scratch / "tree"
            tree.mkdir()

            self.abe.unpack(input_container, intermediate, password)
            result.skipped_entries = self._unpack_archive(intermediate, tree)
            intermediate.unlink()

            archives = self._pack_applications(tree)
            self._publish_directory(tree, output_directory)
            result.application_archives = [output_directory / a.relative_to(tree) for a in archives]
        finally:
            remove_tree(scratch)

        if result.skipped_entries:
            logger.warning(
                f"Skipped {result.skipped_count} entries whose names cannot be represented on this system"
            )
        logger.info(f"Extracted {len(result.application_archives)} application archives")

        return result

    def pack(
        self,
        input_directory: PathLike,
        output_container: PathLike,
        password: str,
        remove_input: bool = True
    ) -> None:
        """Pack a tree of per-application archives back into a container.

        ``input_directory`` is left untouched until the container has been
        written; it is then removed unless ``remove_input`` is false.

        Raises:
            TranscoderError: If ``input_directory`` is not a directory
            ExternalToolMissing: If abe.jar cannot be found
            ExternalToolFailure: If abe.jar fails to encrypt the archive
        """
        input_directory = Path(input_directory)
        output_container = Path(output_container)

        if not input_directory.is_dir():
            raise TranscoderError(f"Not a directory: {input_directory}")

        logger.info(f"Packing {input_directory} -> {output_container}")
        scratch = make_scratch_dir(output_container)

        try:
            outer = scratch / INTERMEDIATE_ARCHIVE
            self._build_outer_archive(input_directory, outer)

            staged = scratch / output_container.name
            self.abe.pack(outer, staged, password)
            os.replace(staged, output_container)
        finally:
            remove_tree(scratch)

        if remove_input:
            shutil.rmtree(input_directory)

        logger.info(f"Packed backup into {output_container}")

    def _check_destination(self, output_directory: Path) -> None:
        if not output_directory.exists():
            return

        if not output_directory.is_dir() or any(output_directory.iterdir()):
            raise TranscoderError(f"Output directory is not empty: {output_directory}")

    def _publish_directory(self, tree: Path, output_directory: Path) -> None:
        """Move the finished tree into place."""
        if output_directory.exists():
            output_directory.rmdir()
        os.replace(tree, output_directory)

    def _unpack_archive(self, archive: Path, destination: Path) -> List[str]:
        """Unpack ``archive`` into ``destination``, returning skipped member names.

        Members are extracted one at a time so that a name the OS rejects
        only costs that member. Directory attributes are applied last, in
        reverse order, so that writing their contents does not change them.
        """
        skipped: List[str] = []
        directories: List[tarfile.TarInfo] = []

        def _member_filter(member: tarfile.TarInfo, path: str) -> Optional[tarfile.TarInfo]:
            if not is_representable_name(member.name):
                logger.log(TRACE, f"Skipping entry with unrepresentable name: {member.name!r}")
                skipped.append(member.name)
                return None

            try:
                filtered = tarfile.tar_filter(member, path)
            except tarfile.FilterError as e:
                logger.log(TRACE, f"Skipping entry {member.name!r}: {e}")
                skipped.append(member.name)
                return None

            if filtered.isdir():
                directories.append(filtered)
            return filtered

        with tarfile.open(archive) as tar:
            for member in tar.getmembers():
                pending = len(directories)
                try:
                    tar.extract(member, destination, set_attrs=not member.isdir(), filter=_member_filter)
                except OSError as e:
                    if e.errno not in UNREPRESENTABLE_ERRNOS:
                        raise
                    del directories[pending:]
                    logger.log(TRACE, f"Skipping entry {member.name!r}: {e}")
                    skipped.append(member.name)

            directories.sort(key=lambda d: d.name, reverse=True)
            for directory in directories:
                dirpath = os.path.join(destination, directory.name)
                try:
                    tar.chown(directory, dirpath, numeric_owner=False)
                    tar.utime(directory, dirpath)
                    tar.chmod(directory, dirpath)
                except tarfile.ExtractError as e:
                    logger.debug(f"Could not restore attributes of {directory.name!r}: {e}")

        return skipped

    def _pack_applications(self, tree: Path) -> List[Path]:
        """Collapse every application directory into ``<application>.tar``."""
        application_dirs = [
            app_dir
            for category in sorted(tree.iterdir())
            if category.is_dir() and not category.is_symlink()
            for app_dir in sorted(category.iterdir())
            if app_dir.is_dir() and not app_dir.is_symlink()
        ]

        archives = []

        with tqdm(
            total=len(application_dirs),
            desc="Packing applications",
            unit="app",
            disable=not self.show_progress
        ) as pbar:
            for app_dir in application_dirs:
                pbar.set_postfix_str(app_dir.name)

                archive_path = app_dir.with_name(app_dir.name + ARCHIVE_SUFFIX)
                if archive_path.exists():
                    raise TranscoderError(f"Application archive already exists: {archive_path}")

                with tarfile.open(archive_path, "w") as tar:
                    tar.add(app_dir, arcname=app_dir.name)

                # The archive is now the only copy of the application's files
                shutil.rmtree(app_dir)
                archives.append(archive_path)
                logger.debug(f"Archived application {app_dir.parent.name}/{app_dir.name}")

                pbar.update(1)

        return archives

    def _build_outer_archive(self, input_directory: Path, outer: Path) -> None:
        """Write every category of ``input_directory`` into one tar archive."""
        with tarfile.open(outer, "w") as out:
            for category in sorted(input_directory.iterdir()):
                if not category.is_dir():
                    logger.debug(f"Ignoring non-category entry {category}")
                    continue

                out.add(category, arcname=category.name, recursive=False)

                for entry in sorted(category.iterdir()):
                    if entry.is_file() and entry.suffix == ARCHIVE_SUFFIX:
                        self._append_application(out, entry, category.name)
                    else:
                        out.add(entry, arcname=f"{category.name}/{entry.name}")

    def _append_application(self, out: tarfile.TarFile, archive: Path, category: str) -> None:
        """Copy the members of an application archive under ``category``."""
        with tarfile.open(archive) as app:
            for member in app:
                fileobj = app.extractfile(member) if member.isreg() else None

                member.name = f"{category}/{member.name}"
                if member.islnk():
                    member.linkname = f"{category}/{member.linkname}"
                # Stale pax path records would override the renamed fields
                member.pax_headers = {
                    key: value
                    for key, value in member.pax_headers.items()
                    if key not in ("path", "linkpath")
                }

                out.addfile(member, fileobj)

        logger.debug(f"Appended application archive {category}/{archive.name}")
