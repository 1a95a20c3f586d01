from __future__ import annotations

from .apply import apply, apply_bytes
from .errors import (
    ApplyError,
    ContentMismatchError,
    DiffError,
    FormatNotRecognizedError,
    HunkHeaderError,
    HunkMismatchError,
    HunkOutOfBoundsError,
    MalformedHunkError,
    MissingSeparatorError,
    NoHunksError,
    OverlappingHunksError,
    ParsePatchError,
    PatchError,
    TrailingContentError,
    UnexpectedEofError,
    UnsupportedPatchError,
)
from .formats import (
    FORMATS,
    PatchFormat,
    detect_format,
    get_supported_formats,
    is_context_diff,
    is_git_diff,
    is_normal_diff,
    is_unified_diff,
    parse,
    parse_bytes,
    parse_bytes_multiple,
    parse_context,
    parse_context_bytes,
    parse_context_bytes_multiple,
    parse_context_multiple,
    parse_git,
    parse_git_bytes,
    parse_git_bytes_multiple,
    parse_git_multiple,
    parse_multiple,
    parse_normal,
    parse_normal_bytes,
    parse_normal_bytes_multiple,
    parse_normal_multiple,
    parse_unified,
    parse_unified_bytes,
    parse_unified_bytes_multiple,
    parse_unified_multiple,
)
from .models import Context, Delete, Diff, Hunk, HunkRange, Insert, Line, Stats
from .text import LineIter, Text

__version__ = "0.1.0"

__all__ = [
    "FORMATS",
    "ApplyError",
    "Context",
    "ContentMismatchError",
    "Delete",
    "Diff",
    "DiffError",
    "FormatNotRecognizedError",
    "Hunk",
    "HunkHeaderError",
    "HunkMismatchError",
    "HunkOutOfBoundsError",
    "HunkRange",
    "Insert",
    "Line",
    "LineIter",
    "MalformedHunkError",
    "MissingSeparatorError",
    "NoHunksError",
    "OverlappingHunksError",
    "ParsePatchError",
    "PatchError",
    "PatchFormat",
    "Stats",
    "Text",
    "TrailingContentError",
    "UnexpectedEofError",
    "UnsupportedPatchError",
    "apply",
    "apply_bytes",
    "detect_format",
    "get_supported_formats",
    "is_context_diff",
    "is_git_diff",
    "is_normal_diff",
    "is_unified_diff",
    "parse",
    "parse_bytes",
    "parse_bytes_multiple",
    "parse_context",
    "parse_context_bytes",
    "parse_context_bytes_multiple",
    "parse_context_multiple",
    "parse_git",
    "parse_git_bytes",
    "parse_git_bytes_multiple",
    "parse_git_multiple",
    "parse_multiple",
    "parse_normal",
    "parse_normal_bytes",
    "parse_normal_bytes_multiple",
    "parse_normal_multiple",
    "parse_unified",
    "parse_unified_bytes",
    "parse_unified_bytes_multiple",
    "parse_unified_multiple",
]
