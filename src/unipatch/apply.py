from __future__ import annotations

from typing import AnyStr, List, Tuple

from unipatch.errors import (
    ContentMismatchError,
    HunkOutOfBoundsError,
    MalformedHunkError,
    OverlappingHunksError,
)
from unipatch.logger import logger
from unipatch.models import Context, Delete, Diff, Hunk, Insert, Stats
from unipatch.text import as_str, empty_like, split_lines


def apply(original: AnyStr, diff: Diff[AnyStr]) -> Tuple[AnyStr, Stats]:
    """
    Replay diff against original and return (new_text, stats).

    Hunks must be ordered and non-overlapping in old-file coordinates, and
    the lines each hunk deletes or keeps must match the source exactly.
    Any violation raises an ApplyError subclass; no partial text is ever
    returned.
    """
    source = split_lines(original)
    _validate(diff, len(source))

    out: List[AnyStr] = []
    cursor = 0  # 0-based index of the next unconsumed source line
    added = deleted = 0

    for index, hunk in enumerate(diff.hunks):
        start = hunk.old_range.start - 1
        for content, ending in source[cursor:start]:
            out.append(content)
            out.append(ending)
        cursor = start

        pos = cursor
        for line in hunk.lines:
            if isinstance(line, Insert):
                out.append(line.content)
                out.append(line.ending)
                added += 1
                continue
            content, ending = source[pos]
            if content != line.content:
                raise ContentMismatchError(
                    f"Hunk #{index + 1} does not match source line {pos + 1}",
                    hunk_index=index,
                    line=pos + 1,
                    expected=line.content,
                    actual=content,
                    hint=f"expected {as_str(line.content)!r}, found {as_str(content)!r}",
                )
            if isinstance(line, Context):
                out.append(content)
                out.append(ending)
            elif isinstance(line, Delete):
                deleted += 1
            else:
                raise TypeError(f"Unknown line type: {type(line).__name__}")
            pos += 1
        cursor = start + hunk.old_range.length

    for content, ending in source[cursor:]:
        out.append(content)
        out.append(ending)

    stats = Stats(lines_added=added, lines_deleted=deleted, hunks_applied=len(diff.hunks))
    logger.debug(
        "applied diff",
        hunks=stats.hunks_applied,
        added=stats.lines_added,
        deleted=stats.lines_deleted,
    )
    return empty_like(original).join(out), stats  # type: ignore[return-value]


def apply_bytes(original: bytes, diff: Diff[bytes]) -> Tuple[bytes, Stats]:
    return apply(original, diff)


def _validate(diff: Diff, n_lines: int) -> None:
    """Reject malformed, misordered or out-of-range hunks before producing output."""
    prev: Hunk | None = None
    for index, hunk in enumerate(diff.hunks):
        if not hunk.is_consistent():
            raise MalformedHunkError(
                f"Hunk #{index + 1} has {hunk.old_line_count()} old / "
                f"{hunk.new_line_count()} new line(s) but ranges "
                f"{hunk.old_range} / {hunk.new_range}",
            )
        rng = hunk.old_range
        if prev is not None and rng.start < prev.old_range.end:
            raise OverlappingHunksError(
                f"Hunk #{index + 1} (old lines {rng}) overlaps or precedes "
                f"hunk #{index} (old lines {prev.old_range})",
                hint="Hunks must be in ascending, non-overlapping old-file order",
            )
        if rng.start < 1:
            raise HunkOutOfBoundsError(
                f"Hunk #{index + 1} starts at line {rng.start}", line=rng.start
            )
        if rng.length == 0:
            if rng.start > n_lines + 1:
                raise HunkOutOfBoundsError(
                    f"Hunk #{index + 1} inserts before line {rng.start} "
                    f"but the source has {n_lines} line(s)",
                    line=rng.start,
                )
        elif rng.end - 1 > n_lines:
            raise HunkOutOfBoundsError(
                f"Hunk #{index + 1} covers lines {rng.start}-{rng.end - 1} "
                f"but the source has {n_lines} line(s)",
                line=rng.start,
            )
        prev = hunk
