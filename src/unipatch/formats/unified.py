from __future__ import annotations

import re
from typing import AnyStr, List, Sequence, Tuple

from unipatch.errors import (
    HunkHeaderError,
    HunkMismatchError,
    NoHunksError,
    TrailingContentError,
    UnexpectedEofError,
)
from unipatch.logger import logger
from unipatch.models import Context, Delete, Diff, Hunk, HunkRange, Insert, Line
from unipatch.text import as_str, first_non_blank_line, is_blank, split_lines, strip_prefix

HUNK_HEADER_RE = re.compile(r"^@@ -([0-9]+)(?:,([0-9]+))? \+([0-9]+)(?:,([0-9]+))? @@(?: ?(.*))?$")
OLD_FILE_PREFIX = "--- "
NEW_FILE_PREFIX = "+++ "
HUNK_PREFIX = "@@"
CONTEXT_PREFIX = " "
DELETE_PREFIX = "-"
INSERT_PREFIX = "+"
NO_NEWLINE_PREFIX = "\\"

LinePairs = Sequence[Tuple[AnyStr, AnyStr]]


def is_unified_diff(text: AnyStr) -> bool:
    """True when the first non-blank line is a `--- ` file header or an `@@` hunk header."""
    first = first_non_blank_line(text)
    if first is None:
        return False
    return first.startswith(OLD_FILE_PREFIX) or HUNK_HEADER_RE.match(first) is not None


def parse_unified(text: str) -> Diff[str]:
    return _parse_unified_diffs(text, multiple=False)[0]


def parse_unified_bytes(text: bytes) -> Diff[bytes]:
    return _parse_unified_diffs(text, multiple=False)[0]


def parse_unified_multiple(text: str) -> List[Diff[str]]:
    return _parse_unified_diffs(text, multiple=True)


def parse_unified_bytes_multiple(text: bytes) -> List[Diff[bytes]]:
    return _parse_unified_diffs(text, multiple=True)


def _as_label(rest: AnyStr) -> AnyStr:
    # Drop the optional tab-separated timestamp.
    tab = b"\t" if isinstance(rest, bytes) else "\t"
    idx = rest.find(tab)  # type: ignore[arg-type]
    if idx != -1:
        rest = rest[:idx]
    return rest


def _like(value: str, text: AnyStr) -> AnyStr:
    if isinstance(text, bytes):
        return value.encode("utf-8")  # type: ignore[return-value]
    return value  # type: ignore[return-value]


def is_file_header(lines: LinePairs, i: int) -> bool:
    if i + 1 >= len(lines):
        return False
    return (
        strip_prefix(lines[i][0], OLD_FILE_PREFIX) is not None
        and strip_prefix(lines[i + 1][0], NEW_FILE_PREFIX) is not None
    )


def parse_file_header(lines: LinePairs, i: int) -> Tuple[AnyStr, AnyStr, int]:
    """Parse the `---`/`+++` pair at i, returning (old_label, new_label, next_index)."""
    old_rest = strip_prefix(lines[i][0], OLD_FILE_PREFIX)
    new_rest = strip_prefix(lines[i + 1][0], NEW_FILE_PREFIX)
    if old_rest is None or new_rest is None:
        raise HunkHeaderError("Expected '---' / '+++' file header", line=i + 1)
    return _as_label(old_rest), _as_label(new_rest), i + 2


def is_hunk_header(line: AnyStr) -> bool:
    return strip_prefix(line, HUNK_PREFIX) is not None


def parse_hunk(lines: LinePairs, i: int) -> Tuple[Hunk, int]:
    """Parse one `@@` hunk starting at i; returns (hunk, next_index)."""
    raw_header = lines[i][0]
    header_line = as_str(raw_header)
    m = HUNK_HEADER_RE.match(header_line) if header_line is not None else None
    if m is None:
        raise HunkHeaderError(
            f"Malformed hunk header: {header_line!r}",
            line=i + 1,
            hint="Unified hunk headers look like `@@ -1,3 +1,4 @@`",
        )
    header_no = i + 1
    old_start = int(m.group(1))
    old_len = int(m.group(2)) if m.group(2) is not None else 1
    new_start = int(m.group(3))
    new_len = int(m.group(4)) if m.group(4) is not None else 1
    header = _like(m.group(5), raw_header) if m.group(5) else None

    old_left, new_left = old_len, new_len
    body: List[Line] = []
    i += 1

    def mismatch(what: str) -> HunkMismatchError:
        return HunkMismatchError(
            f"Hunk at line {header_no} has more {what} lines than its header announces",
            line=i + 1,
        )

    while old_left > 0 or new_left > 0:
        if i >= len(lines):
            raise UnexpectedEofError(
                f"Input ended inside hunk ({old_left} old / {new_left} new line(s) missing)",
                line=header_no,
            )
        content, ending = lines[i]
        if not content:
            # A completely empty line stands for an empty context line.
            if old_left == 0 or new_left == 0:
                raise mismatch("context")
            body.append(Context(content, ending))
            old_left -= 1
            new_left -= 1
        elif (rest := strip_prefix(content, CONTEXT_PREFIX)) is not None:
            if old_left == 0 or new_left == 0:
                raise mismatch("context")
            body.append(Context(rest, ending))
            old_left -= 1
            new_left -= 1
        elif (rest := strip_prefix(content, DELETE_PREFIX)) is not None:
            if old_left == 0:
                raise mismatch("deleted")
            body.append(Delete(rest, ending))
            old_left -= 1
        elif (rest := strip_prefix(content, INSERT_PREFIX)) is not None:
            if new_left == 0:
                raise mismatch("added")
            body.append(Insert(rest, ending))
            new_left -= 1
        elif strip_prefix(content, NO_NEWLINE_PREFIX) is not None and body:
            body[-1] = _without_ending(body[-1])
        else:
            raise HunkMismatchError(
                f"Unexpected line inside hunk: {as_str(content)!r}",
                line=i + 1,
                hint="Hunk lines must start with ' ', '-', '+' or '\\'",
            )
        i += 1

    if i < len(lines) and body and strip_prefix(lines[i][0], NO_NEWLINE_PREFIX) is not None:
        body[-1] = _without_ending(body[-1])
        i += 1

    # An empty old range is anchored after old_start; store the line it precedes.
    old_range = HunkRange(old_start + 1 if old_len == 0 else old_start, old_len)
    new_range = HunkRange(new_start, new_len)
    return Hunk(old_range, new_range, header, tuple(body)), i


def _without_ending(line: Line) -> Line:
    return type(line)(line.content, line.ending[:0])


def parse_hunks(lines: LinePairs, i: int) -> Tuple[List[Hunk], int]:
    """Parse consecutive hunks (blank lines between them are skipped)."""
    hunks: List[Hunk] = []
    while True:
        j = i
        while j < len(lines) and is_blank(lines[j][0]):
            j += 1
        if j >= len(lines) or not is_hunk_header(lines[j][0]):
            return hunks, j
        hunk, i = parse_hunk(lines, j)
        hunks.append(hunk)


def _parse_unified_diffs(text: AnyStr, *, multiple: bool) -> List[Diff[AnyStr]]:
    lines = split_lines(text)
    diffs: List[Diff[AnyStr]] = []
    i = 0

    while i < len(lines):
        content, _ending = lines[i]
        if is_blank(content):
            i += 1
            continue

        if is_file_header(lines, i):
            if diffs and not multiple:
                raise TrailingContentError(
                    "Input contains more than one file section",
                    line=i + 1,
                    hint="Use the *_multiple parser for multi-file patches",
                )
            old_file, new_file, body_start = parse_file_header(lines, i)
            hunks, i = parse_hunks(lines, body_start)
            if not hunks:
                raise NoHunksError(
                    f"File section for {as_str(new_file)!r} has no hunks",
                    line=body_start,
                )
            diffs.append(Diff(old_file, new_file, tuple(hunks)))
            continue

        if is_hunk_header(content):
            if diffs:
                raise HunkHeaderError(
                    "Hunk header outside of a file section",
                    line=i + 1,
                    hint="Each group of hunks after the first needs '---' / '+++' headers",
                )
            hunks, i = parse_hunks(lines, i)
            diffs.append(Diff(None, None, tuple(hunks)))
            continue

        if diffs and not multiple:
            raise TrailingContentError(
                f"Unparseable content after the last hunk: {as_str(content)!r}",
                line=i + 1,
            )
        # Preamble such as `diff -u a b` or `Index:` lines.
        i += 1

    if not diffs:
        raise NoHunksError("No hunks found in unified diff")

    logger.debug(
        "parsed unified diff",
        files=len(diffs),
        hunks=sum(len(d.hunks) for d in diffs),
    )
    return diffs
