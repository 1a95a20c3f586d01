from __future__ import annotations

from dataclasses import dataclass, field
from typing import AnyStr, Generic, Optional, Tuple, Union


@dataclass(frozen=True)
class Context(Generic[AnyStr]):
    """A line present in both texts, carried for positional anchoring."""

    content: AnyStr
    ending: AnyStr


@dataclass(frozen=True)
class Insert(Generic[AnyStr]):
    content: AnyStr
    ending: AnyStr


@dataclass(frozen=True)
class Delete(Generic[AnyStr]):
    content: AnyStr
    ending: AnyStr


Line = Union[Context, Insert, Delete]


def reverse_line(line: Line) -> Line:
    if isinstance(line, Insert):
        return Delete(line.content, line.ending)
    if isinstance(line, Delete):
        return Insert(line.content, line.ending)
    if isinstance(line, Context):
        return line
    raise TypeError(f"Unknown line type: {type(line).__name__}")


@dataclass(frozen=True)
class HunkRange:
    """
    A (start, length) pair of 1-based line coordinates.

    length == 0 marks an empty range. On the old side the insertion happens
    immediately before line `start`; on the new side the deletion lands
    immediately after line `start`.
    """

    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length

    def __str__(self) -> str:
        return f"{self.start},{self.length}"


@dataclass(frozen=True)
class Hunk(Generic[AnyStr]):
    old_range: HunkRange
    new_range: HunkRange
    header: Optional[AnyStr] = None
    lines: Tuple[Line, ...] = field(default_factory=tuple)

    def old_line_count(self) -> int:
        return sum(1 for ln in self.lines if isinstance(ln, (Delete, Context)))

    def new_line_count(self) -> int:
        return sum(1 for ln in self.lines if isinstance(ln, (Insert, Context)))

    def is_consistent(self) -> bool:
        return (
            self.old_line_count() == self.old_range.length
            and self.new_line_count() == self.new_range.length
        )

    def added(self) -> int:
        return sum(1 for ln in self.lines if isinstance(ln, Insert))

    def deleted(self) -> int:
        return sum(1 for ln in self.lines if isinstance(ln, Delete))

    def reverse(self) -> "Hunk[AnyStr]":
        # Empty ranges use different anchors on each side; convert while swapping.
        old, new = self.old_range, self.new_range
        rev_old = HunkRange(new.start + 1 if new.length == 0 else new.start, new.length)
        rev_new = HunkRange(old.start - 1 if old.length == 0 else old.start, old.length)
        return Hunk(
            old_range=rev_old,
            new_range=rev_new,
            header=self.header,
            lines=tuple(reverse_line(ln) for ln in self.lines),
        )


@dataclass(frozen=True)
class Stats:
    lines_added: int = 0
    lines_deleted: int = 0
    hunks_applied: int = 0

    def has_changes(self) -> bool:
        return self.lines_added > 0 or self.lines_deleted > 0


@dataclass(frozen=True)
class Diff(Generic[AnyStr]):
    """An ordered sequence of hunks for one file, plus optional labels."""

    old_file: Optional[AnyStr] = None
    new_file: Optional[AnyStr] = None
    hunks: Tuple[Hunk[AnyStr], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.hunks, tuple):
            object.__setattr__(self, "hunks", tuple(self.hunks))

    def is_empty(self) -> bool:
        return not self.hunks

    def stats(self) -> Stats:
        return Stats(
            lines_added=sum(h.added() for h in self.hunks),
            lines_deleted=sum(h.deleted() for h in self.hunks),
            hunks_applied=len(self.hunks),
        )

    def reverse(self) -> "Diff[AnyStr]":
        return Diff(
            old_file=self.new_file,
            new_file=self.old_file,
            hunks=tuple(h.reverse() for h in self.hunks),
        )
