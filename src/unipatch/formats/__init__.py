from __future__ import annotations

from enum import Enum
from typing import AnyStr, Callable, List, NamedTuple, Tuple

from unipatch.errors import FormatNotRecognizedError
from unipatch.models import Diff
from unipatch.formats.context import (
    is_context_diff,
    parse_context,
    parse_context_bytes,
    parse_context_bytes_multiple,
    parse_context_multiple,
)
from unipatch.formats.git import (
    is_git_diff,
    parse_git,
    parse_git_bytes,
    parse_git_bytes_multiple,
    parse_git_multiple,
)
from unipatch.formats.normal import (
    is_normal_diff,
    parse_normal,
    parse_normal_bytes,
    parse_normal_bytes_multiple,
    parse_normal_multiple,
)
from unipatch.formats.unified import (
    is_unified_diff,
    parse_unified,
    parse_unified_bytes,
    parse_unified_bytes_multiple,
    parse_unified_multiple,
)


class PatchFormat(str, Enum):
    git = "git"
    unified = "unified"
    context = "context"
    normal = "normal"


class FormatEntry(NamedTuple):
    format: PatchFormat
    detect: Callable[[AnyStr], bool]
    parse: Callable[[AnyStr], Diff]
    parse_multiple: Callable[[AnyStr], List[Diff]]


# Fixed priority order: the first detector that matches wins.
FORMATS: Tuple[FormatEntry, ...] = (
    FormatEntry(PatchFormat.git, is_git_diff, parse_git, parse_git_multiple),
    FormatEntry(PatchFormat.unified, is_unified_diff, parse_unified, parse_unified_multiple),
    FormatEntry(PatchFormat.context, is_context_diff, parse_context, parse_context_multiple),
    FormatEntry(PatchFormat.normal, is_normal_diff, parse_normal, parse_normal_multiple),
)


def get_supported_formats() -> Tuple[str, ...]:
    return tuple(entry.format.value for entry in FORMATS)


def _select(text: AnyStr) -> FormatEntry:
    for entry in FORMATS:
        if entry.detect(text):
            return entry
    raise FormatNotRecognizedError(
        "Patch format not recognized",
        hint="Supported formats: " + ", ".join(get_supported_formats()),
    )


def detect_format(text: AnyStr) -> PatchFormat:
    return _select(text).format


def parse(text: AnyStr) -> Diff[AnyStr]:
    """Detect the dialect of a single-file patch and parse it."""
    return _select(text).parse(text)


def parse_multiple(text: AnyStr) -> List[Diff[AnyStr]]:
    """Detect the dialect of a (possibly multi-file) patch and parse every file section."""
    return _select(text).parse_multiple(text)


def parse_bytes(text: bytes) -> Diff[bytes]:
    return parse(text)


def parse_bytes_multiple(text: bytes) -> List[Diff[bytes]]:
    return parse_multiple(text)


__all__ = [
    "FORMATS",
    "FormatEntry",
    "PatchFormat",
    "detect_format",
    "get_supported_formats",
    "parse",
    "parse_bytes",
    "parse_bytes_multiple",
    "parse_multiple",
    "is_context_diff",
    "is_git_diff",
    "is_normal_diff",
    "is_unified_diff",
    "parse_context",
    "parse_context_bytes",
    "parse_context_bytes_multiple",
    "parse_context_multiple",
    "parse_git",
    "parse_git_bytes",
    "parse_git_bytes_multiple",
    "parse_git_multiple",
    "parse_normal",
    "parse_normal_bytes",
    "parse_normal_bytes_multiple",
    "parse_normal_multiple",
    "parse_unified",
    "parse_unified_bytes",
    "parse_unified_bytes_multiple",
    "parse_unified_multiple",
]
