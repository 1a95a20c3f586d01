"""
Parser for the traditional ("normal") diff format.

Hunks are introduced by command lines:

    NaR    add lines R of the new file after line N of the old file
    NcR    change lines N of the old file into lines R of the new file
    NdR    delete lines N of the old file; they would have followed line R
           of the new file

N and R are either a single line number or a `start,end` pair. Lines from
the old file carry a "< " prefix, lines from the new file a "> " prefix, and
change commands separate the two groups with a literal "---" line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import AnyStr, List, Optional, Tuple

from unipatch.errors import (
    HunkHeaderError,
    HunkMismatchError,
    MissingSeparatorError,
    NoHunksError,
    TrailingContentError,
    UnexpectedEofError,
)
from unipatch.logger import logger
from unipatch.models import Delete, Diff, Hunk, HunkRange, Insert, Line
from unipatch.text import as_str, first_non_blank_line, is_blank, split_lines, strip_prefix

COMMAND_RE = re.compile(r"^([0-9]+)(?:,([0-9]+))?([acd])([0-9]+)(?:,([0-9]+))?$")
OLD_PREFIX = "< "
NEW_PREFIX = "> "
SEPARATOR = "---"
NO_NEWLINE_PREFIX = "\\"


@dataclass(frozen=True)
class NormalCommand:
    old_start: int
    old_end: int
    command: str
    new_start: int
    new_end: int


def parse_command_line(line: str) -> Optional[NormalCommand]:
    """Parse a command line like `3c3`, `1,2d5` or `0a1,3`."""
    m = COMMAND_RE.match(line)
    if m is None:
        return None
    old_start = int(m.group(1))
    new_start = int(m.group(4))
    return NormalCommand(
        old_start=old_start,
        old_end=int(m.group(2)) if m.group(2) is not None else old_start,
        command=m.group(3),
        new_start=new_start,
        new_end=int(m.group(5)) if m.group(5) is not None else new_start,
    )


def is_normal_diff(text: AnyStr) -> bool:
    """True when the first non-blank line is a `<range>[acd]<range>` command."""
    first = first_non_blank_line(text)
    if first is None:
        return False
    return parse_command_line(first) is not None


def parse_normal(text: str) -> Diff[str]:
    return Diff(None, None, _parse_normal_hunks(text))


def parse_normal_bytes(text: bytes) -> Diff[bytes]:
    return Diff(None, None, _parse_normal_hunks(text))


def parse_normal_multiple(text: str) -> List[Diff[str]]:
    # The normal format has no multi-file convention: always a single diff.
    return [parse_normal(text)]


def parse_normal_bytes_multiple(text: bytes) -> List[Diff[bytes]]:
    return [parse_normal_bytes(text)]


def _checked_span(start: int, end: int, line_no: int) -> int:
    if end < start:
        raise HunkHeaderError(
            f"Range end {end} precedes start {start}",
            line=line_no,
            hint="Ranges are written as `start,end` with end >= start",
        )
    return end - start + 1


def _parse_normal_hunks(text: AnyStr) -> Tuple[Hunk[AnyStr], ...]:
    all_lines = split_lines(text)
    hunks: List[Hunk[AnyStr]] = []
    i = 0

    def collect(prefix: str, kind: type) -> List[Line]:
        nonlocal i
        body: List[Line] = []
        while i < len(all_lines):
            content, ending = all_lines[i]
            stripped = strip_prefix(content, prefix)
            if stripped is not None:
                body.append(kind(stripped, ending))
                i += 1
                continue
            if body and strip_prefix(content, NO_NEWLINE_PREFIX) is not None:
                # "\ No newline at end of file" applies to the previous line.
                last = body[-1]
                body[-1] = kind(last.content, ending[:0])
                i += 1
                continue
            break
        return body

    def expect_count(
        got: int, want: int, what: str, cmd_line_no: int
    ) -> None:
        if got == want:
            return
        if got < want and i >= len(all_lines):
            raise UnexpectedEofError(
                f"Expected {want} {what} line(s) for command, input ended after {got}",
                line=cmd_line_no,
            )
        raise HunkMismatchError(
            f"Command announces {want} {what} line(s) but body has {got}",
            line=cmd_line_no,
        )

    while i < len(all_lines):
        content, _ending = all_lines[i]
        line_no = i + 1

        if is_blank(content):
            i += 1
            continue

        line_str = as_str(content)
        cmd = parse_command_line(line_str) if line_str is not None else None
        if cmd is None:
            if hunks:
                raise TrailingContentError(
                    f"Unparseable content after hunk #{len(hunks)}: {line_str!r}",
                    line=line_no,
                    hint="Expected another `<range>[acd]<range>` command",
                )
            raise HunkHeaderError(
                f"Malformed command line: {line_str!r}",
                line=line_no,
                hint="Normal diff commands look like `2c2`, `1,3d0` or `0a1,2`",
            )
        i += 1

        if cmd.command == "a":
            new_len = _checked_span(cmd.new_start, cmd.new_end, line_no)
            lines = collect(NEW_PREFIX, Insert)
            expect_count(len(lines), new_len, "added", line_no)
            old_range = HunkRange(cmd.old_start + 1, 0)
            new_range = HunkRange(cmd.new_start, new_len)
        elif cmd.command == "d":
            old_len = _checked_span(cmd.old_start, cmd.old_end, line_no)
            lines = collect(OLD_PREFIX, Delete)
            expect_count(len(lines), old_len, "deleted", line_no)
            old_range = HunkRange(cmd.old_start, old_len)
            # The new-side anchor keeps the parsed value as is.
            new_range = HunkRange(cmd.new_start, 0)
        else:
            old_len = _checked_span(cmd.old_start, cmd.old_end, line_no)
            new_len = _checked_span(cmd.new_start, cmd.new_end, line_no)
            lines = collect(OLD_PREFIX, Delete)
            if i >= len(all_lines):
                raise UnexpectedEofError(
                    "Input ended before the '---' separator of a change command",
                    line=line_no,
                )
            sep = as_str(all_lines[i][0])
            if sep != SEPARATOR:
                raise MissingSeparatorError(
                    f"Expected '---' separator, found {sep!r}",
                    line=i + 1,
                    hint="Change commands list '< ' lines, then '---', then '> ' lines",
                )
            expect_count(len(lines), old_len, "deleted", line_no)
            i += 1
            inserts = collect(NEW_PREFIX, Insert)
            expect_count(len(inserts), new_len, "added", line_no)
            lines = lines + inserts
            old_range = HunkRange(cmd.old_start, old_len)
            new_range = HunkRange(cmd.new_start, new_len)

        hunks.append(Hunk(old_range, new_range, None, tuple(lines)))

    if not hunks:
        raise NoHunksError("No hunks found in normal diff")

    logger.debug("parsed normal diff", hunks=len(hunks))
    return tuple(hunks)
