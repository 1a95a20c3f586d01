from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class DiffError(ValueError):
    """Any problem detected while detecting, parsing or applying a patch."""

    def __init__(
        self,
        msg: str,
        *,
        line: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(msg)
        self.msg = msg
        self.line = line
        self.hint = hint

    def __str__(self) -> str:
        if self.line is not None:
            return f"line {self.line}: {self.msg}"
        return self.msg


class FormatNotRecognizedError(DiffError):
    """No known dialect matched the input."""


# Parsing


class ParsePatchError(DiffError):
    """The input matched a dialect but is malformed."""


class HunkHeaderError(ParsePatchError):
    """A line expected to be a command, anchor or separator failed to parse."""


class MissingSeparatorError(HunkHeaderError):
    """A normal-format change command lacks its '---' separator."""


class TrailingContentError(HunkHeaderError):
    """Unparseable content follows the last complete hunk."""


class UnexpectedEofError(ParsePatchError):
    """More hunk content was required but the input was exhausted."""


class NoHunksError(ParsePatchError):
    """The input parsed without producing a single hunk."""


class HunkMismatchError(ParsePatchError):
    """A hunk body disagrees with the line counts of its header."""


class UnsupportedPatchError(ParsePatchError):
    """The patch uses a feature this library does not handle (binary patches)."""


# Application


class ApplyError(DiffError):
    """A diff could not be applied to the given text."""


class ContentMismatchError(ApplyError):
    def __init__(
        self,
        msg: str,
        *,
        hunk_index: int,
        line: int,
        expected: Any,
        actual: Any,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(msg, line=line, hint=hint)
        self.hunk_index = hunk_index
        self.expected = expected
        self.actual = actual


class HunkOutOfBoundsError(ApplyError):
    """A hunk addresses lines beyond the end of the source text."""


class OverlappingHunksError(ApplyError):
    """Hunks are out of order or overlap in old-file coordinates."""


class MalformedHunkError(ApplyError):
    """A hunk's lines disagree with its ranges."""


@dataclass
class PatchError:
    """Per-file error record collected while applying a patch to a tree."""

    msg: str
    line: Optional[int] = None
    hint: Optional[str] = None
    filename: Optional[str] = None

    @classmethod
    def from_exception(
        cls, exc: DiffError, *, filename: Optional[str] = None
    ) -> "PatchError":
        return cls(msg=exc.msg, line=exc.line, hint=exc.hint, filename=filename)
