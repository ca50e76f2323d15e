"""Utility functions for path operations."""

import os
import shutil
import tempfile
from pathlib import Path, PurePosixPath
from typing import Union

from ..util.logging import get_logger

logger = get_logger(__name__)

# Characters and names Windows refuses in a path component
_WINDOWS_INVALID_CHARS = set('<>:"|?*') | {chr(c) for c in range(32)}
_WINDOWS_RESERVED_NAMES = {
    "CON", "PRN", "AUX", "NUL",
    *(f"COM{i}" for i in range(1, 10)),
    *(f"LPT{i}" for i in range(1, 10)),
}

# Longest path component accepted by common filesystems, in bytes
MAX_COMPONENT_BYTES = 255


def ensure_directory(path: Path) -> Path:
    """Ensure directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def with_suffix_once(name: Union[str, Path], suffix: str) -> Path:
    """Append ``suffix`` to ``name`` unless it already ends with it."""
    path = Path(name)
    if path.name.endswith(suffix):
        return path
    return path.with_name(path.name + suffix)


def is_representable_name(name: str, windows: bool = os.name == "nt") -> bool:
    """Check whether an archive member name can be created on this OS.
    
    Rejects absolute paths, parent references, NUL bytes, over-long
    components and names that cannot be encoded in the filesystem
    encoding. On Windows the reserved characters, reserved device names
    and trailing dots or spaces are rejected as well.
    """
    if not name or "\x00" in name:
        return False
    
    try:
        os.fsencode(name)
    except UnicodeEncodeError:
        return False
    
    posix = PurePosixPath(name.replace("\\", "/") if windows else name)
    if posix.is_absolute() or ".." in posix.parts:
        return False
    
    if any(len(os.fsencode(part)) > MAX_COMPONENT_BYTES for part in posix.parts):
        return False
    
    if windows:
        if len(name) > 1 and name[1] == ":":
            return False
        for part in posix.parts:
            if any(c in _WINDOWS_INVALID_CHARS for c in part):
                return False
            if part != part.rstrip(". "):
                return False
            if part.split(".")[0].upper() in _WINDOWS_RESERVED_NAMES:
                return False
    
    return True


def make_scratch_dir(destination: Path) -> Path:
    """Create a hidden scratch directory beside ``destination``.
    
    Living on the same filesystem as the destination lets the final result
    be published with an atomic ``os.replace``.
    """
    parent = ensure_directory(destination.absolute().parent)
    return Path(tempfile.mkdtemp(prefix=f".{destination.name}.", suffix=".tmp", dir=parent))


def remove_tree(path: Path) -> None:
    """Remove a scratch directory, logging instead of raising on failure."""
    if not path.exists():
        return
    
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.warning(f"Could not remove scratch directory {path}: {e}")


def format_size(size_bytes: int) -> str:
    """Format file size in human readable format."""
    if size_bytes == 0:
        return "0 B"
    
    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size_bytes >= 1024.0 and i < len(size_names) - 1:
        size_bytes /= 1024.0
        i += 1
    
    return f"{size_bytes:.1f} {size_names[i]}"
