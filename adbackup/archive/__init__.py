"""Backup container transcoding."""

from .abe import PACK, UNPACK, AbeTool
from .transcoder import ARCHIVE_SUFFIX, ArchiveTranscoder, ExtractResult

__all__ = [
    # abe
    "AbeTool",
    "PACK",
    "UNPACK",
    # transcoder
    "ARCHIVE_SUFFIX",
    "ArchiveTranscoder",
    "ExtractResult",
]
