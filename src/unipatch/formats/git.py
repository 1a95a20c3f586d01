from __future__ import annotations

import re
from typing import AnyStr, List, Optional, Sequence, Tuple

from unipatch.errors import (
    HunkHeaderError,
    NoHunksError,
    TrailingContentError,
    UnsupportedPatchError,
)
from unipatch.formats.unified import is_file_header, parse_file_header, parse_hunks
from unipatch.logger import logger
from unipatch.models import Diff
from unipatch.text import as_str, first_non_blank_line, is_blank, split_lines, strip_prefix

DIFF_GIT_PREFIX = "diff --git "
DEV_NULL = "/dev/null"

# Extended header lines git may emit between `diff --git` and the hunks.
EXTENDED_HEADER_RE = re.compile(
    r"^(old mode|new mode|deleted file mode|new file mode|index|similarity index"
    r"|dissimilarity index|rename from|rename to|copy from|copy to) "
)
BINARY_RE = re.compile(r"^(Binary files .* differ|GIT binary patch)$")

LinePairs = Sequence[Tuple[AnyStr, AnyStr]]


def is_git_diff(text: AnyStr) -> bool:
    """True when the first non-blank line is a `diff --git` header."""
    first = first_non_blank_line(text)
    return first is not None and first.startswith(DIFF_GIT_PREFIX)


def parse_git(text: str) -> Diff[str]:
    return _parse_git_diffs(text, multiple=False)[0]


def parse_git_bytes(text: bytes) -> Diff[bytes]:
    return _parse_git_diffs(text, multiple=False)[0]


def parse_git_multiple(text: str) -> List[Diff[str]]:
    return _parse_git_diffs(text, multiple=True)


def parse_git_bytes_multiple(text: bytes) -> List[Diff[bytes]]:
    return _parse_git_diffs(text, multiple=True)


def split_git_paths(rest: str) -> Optional[Tuple[str, str]]:
    """
    Split the `a/X b/Y` part of a `diff --git` line.

    Paths may contain spaces, so the symmetric split (same path on both
    sides) is tried before falling back to the first ` b/` occurrence.
    """
    if not rest.startswith("a/"):
        return None
    if len(rest) % 2 == 1:
        mid = len(rest) // 2
        left, right = rest[:mid], rest[mid + 1 :]
        if rest[mid] == " " and right.startswith("b/") and left[2:] == right[2:]:
            return left, right
    idx = rest.find(" b/")
    if idx == -1:
        return None
    return rest[:idx], rest[idx + 1 :]


def _like(value: str, sample: AnyStr) -> AnyStr:
    if isinstance(sample, bytes):
        return value.encode("utf-8")  # type: ignore[return-value]
    return value  # type: ignore[return-value]


def _parse_section(lines: LinePairs, i: int) -> Tuple[Diff, int]:
    header_no = i + 1
    raw = lines[i][0]
    header = as_str(raw)
    paths = split_git_paths(header[len(DIFF_GIT_PREFIX) :]) if header else None
    if paths is None:
        raise HunkHeaderError(
            f"Malformed diff --git line: {header!r}",
            line=header_no,
            hint="Expected `diff --git a/<path> b/<path>`",
        )
    old_label, new_label = paths
    i += 1

    rename_from: Optional[str] = None
    rename_to: Optional[str] = None
    while i < len(lines):
        content = lines[i][0]
        line = as_str(content)
        if line is None or line.startswith(DIFF_GIT_PREFIX):
            break
        if is_file_header(lines, i) or strip_prefix(content, "@@") is not None:
            break
        if BINARY_RE.match(line):
            raise UnsupportedPatchError(
                "Binary patches are not supported",
                line=i + 1,
            )
        m = EXTENDED_HEADER_RE.match(line)
        if m is None:
            if is_blank(content):
                break
            raise HunkHeaderError(
                f"Unrecognized git extended header: {line!r}",
                line=i + 1,
            )
        value = line[m.end() :]
        kind = m.group(1)
        if kind == "new file mode":
            old_label = DEV_NULL
        elif kind == "deleted file mode":
            new_label = DEV_NULL
        elif kind in ("rename from", "copy from"):
            rename_from = value
        elif kind in ("rename to", "copy to"):
            rename_to = value
        i += 1

    if rename_from is not None:
        old_label = f"a/{rename_from}"
    if rename_to is not None:
        new_label = f"b/{rename_to}"

    old_file = _like(old_label, raw)
    new_file = _like(new_label, raw)
    hunks: list = []
    if i < len(lines) and is_file_header(lines, i):
        old_file, new_file, i = parse_file_header(lines, i)
        hunks, i = parse_hunks(lines, i)
        if not hunks:
            raise NoHunksError(
                f"File section for {as_str(new_file)!r} has no hunks",
                line=i,
            )
    elif i < len(lines) and strip_prefix(lines[i][0], "@@") is not None:
        hunks, i = parse_hunks(lines, i)

    return Diff(old_file, new_file, tuple(hunks)), i


def _parse_git_diffs(text: AnyStr, *, multiple: bool) -> List[Diff[AnyStr]]:
    lines = split_lines(text)
    diffs: List[Diff[AnyStr]] = []
    i = 0

    while i < len(lines):
        content = lines[i][0]
        if is_blank(content):
            i += 1
            continue
        if strip_prefix(content, DIFF_GIT_PREFIX) is not None:
            if diffs and not multiple:
                raise TrailingContentError(
                    "Input contains more than one file section",
                    line=i + 1,
                    hint="Use the *_multiple parser for multi-file patches",
                )
            diff, i = _parse_section(lines, i)
            diffs.append(diff)
            continue
        if diffs:
            raise TrailingContentError(
                f"Unparseable content after file section: {as_str(content)!r}",
                line=i + 1,
            )
        # Preamble before the first section (e.g. a commit message).
        i += 1

    if not diffs:
        raise NoHunksError("No `diff --git` sections found")

    logger.debug(
        "parsed git diff",
        files=len(diffs),
        hunks=sum(len(d.hunks) for d in diffs),
    )
    return diffs
