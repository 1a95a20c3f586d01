"""
Parser for the context diff format (`diff -c`).

    *** old.txt	2024-01-01 00:00:00
    --- new.txt	2024-01-01 00:00:00
    ***************
    *** 1,3 ****
      a
    ! b
      c
    --- 1,3 ----
      a
    ! B
      c

The old section lists context ("  "), deleted ("- ") and changed ("! ")
lines; the new section lists context, inserted ("+ ") and changed lines.
A section holding nothing but context is omitted and inherits the context
of the other section. Both sections are merged into a single ordered line
sequence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import AnyStr, Generic, List, Optional, Sequence, Tuple

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

HUNK_START_RE = re.compile(r"^\*{15}(?: ?(.*))?$")
OLD_RANGE_RE = re.compile(r"^\*\*\* ([0-9]+)(?:,([0-9]+))? \*\*\*\*$")
NEW_RANGE_RE = re.compile(r"^--- ([0-9]+)(?:,([0-9]+))? ----$")
OLD_FILE_PREFIX = "*** "
NEW_FILE_PREFIX = "--- "
NO_NEWLINE_PREFIX = "\\"

OLD_TAGS = ("  ", "- ", "! ")
NEW_TAGS = ("  ", "+ ", "! ")

LinePairs = Sequence[Tuple[AnyStr, AnyStr]]


@dataclass
class _SectionLine(Generic[AnyStr]):
    tag: str
    content: AnyStr
    ending: AnyStr


def is_context_diff(text: AnyStr) -> bool:
    """True when the first non-blank line is a `*** ` file header or a hunk separator."""
    first = first_non_blank_line(text)
    if first is None:
        return False
    return first.startswith(OLD_FILE_PREFIX) or HUNK_START_RE.match(first) is not None


def parse_context(text: str) -> Diff[str]:
    return _parse_context_diffs(text, multiple=False)[0]


def parse_context_bytes(text: bytes) -> Diff[bytes]:
    return _parse_context_diffs(text, multiple=False)[0]


def parse_context_multiple(text: str) -> List[Diff[str]]:
    return _parse_context_diffs(text, multiple=True)


def parse_context_bytes_multiple(text: bytes) -> List[Diff[bytes]]:
    return _parse_context_diffs(text, multiple=True)


def _line_str(lines: LinePairs, i: int) -> Optional[str]:
    return as_str(lines[i][0])


def _matches(regex: re.Pattern, lines: LinePairs, i: int) -> Optional[re.Match]:
    if i >= len(lines):
        return None
    s = _line_str(lines, i)
    return regex.match(s) if s is not None else None


def _is_file_header(lines: LinePairs, i: int) -> bool:
    if i + 1 >= len(lines):
        return False
    if _matches(OLD_RANGE_RE, lines, i) or _matches(NEW_RANGE_RE, lines, i + 1):
        return False
    return (
        strip_prefix(lines[i][0], OLD_FILE_PREFIX) is not None
        and strip_prefix(lines[i + 1][0], NEW_FILE_PREFIX) is not None
    )


def _as_label(rest: AnyStr) -> AnyStr:
    tab = b"\t" if isinstance(rest, bytes) else "\t"
    idx = rest.find(tab)  # type: ignore[arg-type]
    return rest[:idx] if idx != -1 else rest


def _read_section(
    lines: LinePairs[AnyStr], i: int, tags: Tuple[str, ...], stop: Optional[re.Pattern]
) -> Tuple[List[_SectionLine[AnyStr]], int]:
    """Collect tagged section lines from i until a non-section line."""
    out: List[_SectionLine[AnyStr]] = []
    while i < len(lines):
        if stop is not None and _matches(stop, lines, i):
            break
        content, ending = lines[i]
        for tag in tags:
            rest = strip_prefix(content, tag)
            if rest is not None:
                out.append(_SectionLine(tag, rest, ending))
                break
        else:
            if out and strip_prefix(content, NO_NEWLINE_PREFIX) is not None:
                out[-1].ending = ending[:0]
            else:
                break
        i += 1
    return out, i


def _merge_sections(
    old: List[_SectionLine[AnyStr]], new: List[_SectionLine[AnyStr]], line_no: int
) -> List[Line]:
    merged: List[Line] = []
    i = j = 0
    while i < len(old) or j < len(new):
        ot = old[i].tag if i < len(old) else None
        nt = new[j].tag if j < len(new) else None
        if ot == "- ":
            merged.append(Delete(old[i].content, old[i].ending))
            i += 1
        elif nt == "+ ":
            merged.append(Insert(new[j].content, new[j].ending))
            j += 1
        elif ot == "! " and nt == "! ":
            while i < len(old) and old[i].tag == "! ":
                merged.append(Delete(old[i].content, old[i].ending))
                i += 1
            while j < len(new) and new[j].tag == "! ":
                merged.append(Insert(new[j].content, new[j].ending))
                j += 1
        elif ot == "  " and nt == "  ":
            if old[i].content != new[j].content:
                raise HunkMismatchError(
                    "Context lines of the old and new sections differ",
                    line=line_no,
                )
            merged.append(Context(old[i].content, old[i].ending))
            i += 1
            j += 1
        else:
            raise HunkMismatchError(
                "Old and new sections of the hunk do not line up",
                line=line_no,
                hint="Changed ('! ') blocks must appear in both sections at the same position",
            )
    return merged


def _resolve_range(
    m: re.Match, count: int, *, old_side: bool, line_no: int
) -> HunkRange:
    start = int(m.group(1))
    if m.group(2) is not None:
        end = int(m.group(2))
        if end < start:
            raise HunkHeaderError(
                f"Range end {end} precedes start {start}", line=line_no
            )
        length = end - start + 1
        if length != count:
            raise HunkMismatchError(
                f"Range {start},{end} covers {length} line(s) but the hunk has {count}",
                line=line_no,
            )
        return HunkRange(start, length)
    if count == 0:
        # A bare number names the line an empty range follows.
        return HunkRange(start + 1 if old_side else start, 0)
    if count == 1:
        return HunkRange(start, 1)
    raise HunkMismatchError(
        f"Range {start} covers one line but the hunk has {count}", line=line_no
    )


def _parse_hunk(lines: LinePairs, i: int) -> Tuple[Hunk, int]:
    start_line = _line_str(lines, i) or ""
    m_start = HUNK_START_RE.match(start_line)
    if m_start is None:
        raise HunkHeaderError(f"Expected hunk separator, found {start_line!r}", line=i + 1)
    raw_header = m_start.group(1) or None
    header = None
    if raw_header:
        header = raw_header.encode("utf-8") if isinstance(lines[i][0], bytes) else raw_header
    i += 1

    if i >= len(lines):
        raise UnexpectedEofError("Input ended after hunk separator", line=i)
    m_old = _matches(OLD_RANGE_RE, lines, i)
    if m_old is None:
        raise HunkHeaderError(
            f"Malformed old range line: {_line_str(lines, i)!r}",
            line=i + 1,
            hint="Old ranges look like `*** 1,3 ****`",
        )
    old_no = i + 1
    old_lines, i = _read_section(lines, i + 1, OLD_TAGS, NEW_RANGE_RE)

    if i >= len(lines):
        raise UnexpectedEofError("Input ended before the new range line", line=old_no)
    m_new = _matches(NEW_RANGE_RE, lines, i)
    if m_new is None:
        raise HunkHeaderError(
            f"Malformed new range line: {_line_str(lines, i)!r}",
            line=i + 1,
            hint="New ranges look like `--- 1,3 ----`",
        )
    new_no = i + 1
    new_lines, i = _read_section(lines, i + 1, NEW_TAGS, None)

    if not old_lines:
        old_lines = [ln for ln in new_lines if ln.tag == "  "]
    if not new_lines:
        new_lines = [ln for ln in old_lines if ln.tag == "  "]

    body = _merge_sections(old_lines, new_lines, old_no)
    old_count = sum(1 for ln in body if isinstance(ln, (Delete, Context)))
    new_count = sum(1 for ln in body if isinstance(ln, (Insert, Context)))

    old_range = _resolve_range(m_old, old_count, old_side=True, line_no=old_no)
    new_range = _resolve_range(m_new, new_count, old_side=False, line_no=new_no)
    return Hunk(old_range, new_range, header, tuple(body)), i


def _parse_hunks(lines: LinePairs, i: int) -> Tuple[List[Hunk], int]:
    hunks: List[Hunk] = []
    while True:
        while i < len(lines) and is_blank(lines[i][0]):
            i += 1
        if not _matches(HUNK_START_RE, lines, i):
            return hunks, i
        hunk, i = _parse_hunk(lines, i)
        hunks.append(hunk)


def _parse_context_diffs(text: AnyStr, *, multiple: bool) -> List[Diff[AnyStr]]:
    lines = split_lines(text)
    diffs: List[Diff[AnyStr]] = []
    i = 0

    while i < len(lines):
        content, _ending = lines[i]
        if is_blank(content):
            i += 1
            continue

        if _is_file_header(lines, i):
            if diffs and not multiple:
                raise TrailingContentError(
                    "Input contains more than one file section",
                    line=i + 1,
                    hint="Use the *_multiple parser for multi-file patches",
                )
            old_file = _as_label(strip_prefix(lines[i][0], OLD_FILE_PREFIX))
            new_file = _as_label(strip_prefix(lines[i + 1][0], NEW_FILE_PREFIX))
            hunks, i = _parse_hunks(lines, i + 2)
            if not hunks:
                raise NoHunksError(
                    f"File section for {as_str(new_file)!r} has no hunks", line=i
                )
            diffs.append(Diff(old_file, new_file, tuple(hunks)))
            continue

        if _matches(HUNK_START_RE, lines, i):
            if diffs:
                raise HunkHeaderError(
                    "Hunk outside of a file section",
                    line=i + 1,
                    hint="Each group of hunks after the first needs '***' / '---' headers",
                )
            hunks, i = _parse_hunks(lines, i)
            diffs.append(Diff(None, None, tuple(hunks)))
            continue

        if diffs and not multiple:
            raise TrailingContentError(
                f"Unparseable content after the last hunk: {as_str(content)!r}",
                line=i + 1,
            )
        i += 1

    if not diffs:
        raise NoHunksError("No hunks found in context diff")

    logger.debug(
        "parsed context diff",
        files=len(diffs),
        hunks=sum(len(d.hunks) for d in diffs),
    )
    return diffs
