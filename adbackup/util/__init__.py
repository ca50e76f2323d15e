"""Utility module initialization."""

from .hashing import calculate_bytes_hash
from .logging import TRACE, get_logger, setup_logging, verbosity_to_level
from .paths import (
    ensure_directory,
    format_size,
    is_representable_name,
    make_scratch_dir,
    remove_tree,
    with_suffix_once,
)
from .timeutil import format_duration, now_iso

__all__ = [
    # hashing
    "calculate_bytes_hash",
    # logging
    "TRACE",
    "get_logger",
    "setup_logging",
    "verbosity_to_level",
    # paths
    "ensure_directory",
    "format_size",
    "is_representable_name",
    "make_scratch_dir",
    "remove_tree",
    "with_suffix_once",
    # timeutil
    "format_duration",
    "now_iso",
]
