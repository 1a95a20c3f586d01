from __future__ import annotations

from typing import AnyStr, Generic, Optional, Tuple, Union

# Text is either character-validated (str) or raw (bytes).
Text = Union[str, bytes]


def _terminator(text: Text) -> Text:
    return b"\n" if isinstance(text, bytes) else "\n"


def _carriage_return(text: Text) -> Text:
    return b"\r" if isinstance(text, bytes) else "\r"


def empty_like(text: Text) -> Text:
    return b"" if isinstance(text, bytes) else ""


class LineIter(Generic[AnyStr]):
    """
    Lazily split text into (content, ending) pairs.

    ending is "\\n", "\\r\\n" or empty for a final line without a terminator.
    A lone "\\r" is kept as content. Bytes are split on b"\\n" without any
    validation of the content in between.
    """

    def __init__(self, text: AnyStr) -> None:
        self._text = text
        self._pos = 0
        self._nl = _terminator(text)
        self._cr = _carriage_return(text)
        self._empty = empty_like(text)

    def __iter__(self) -> "LineIter[AnyStr]":
        return self

    def __next__(self) -> Tuple[AnyStr, AnyStr]:
        text = self._text
        if self._pos >= len(text):
            raise StopIteration
        idx = text.find(self._nl, self._pos)
        if idx == -1:
            content = text[self._pos :]
            self._pos = len(text)
            return content, self._empty  # type: ignore[return-value]
        end = idx + 1
        if idx > self._pos and text[idx - 1 : idx] == self._cr:
            content = text[self._pos : idx - 1]
            ending = text[idx - 1 : end]
        else:
            content = text[self._pos : idx]
            ending = text[idx:end]
        self._pos = end
        return content, ending


def split_lines(text: AnyStr) -> list[Tuple[AnyStr, AnyStr]]:
    return list(LineIter(text))


def first_non_blank_line(text: Text) -> Optional[str]:
    """Return the first non-blank physical line as str, or None."""
    for content, _ending in LineIter(text):
        line = as_str(content)
        if line is None:
            return None
        if line.strip():
            return line
    return None


def as_str(line: Text) -> Optional[str]:
    if isinstance(line, bytes):
        try:
            return line.decode("utf-8")
        except UnicodeDecodeError:
            return None
    return line


def strip_prefix(line: AnyStr, prefix: str) -> Optional[AnyStr]:
    """Return line without prefix, or None when line does not start with it."""
    if isinstance(line, bytes):
        raw = prefix.encode("utf-8")
        if line.startswith(raw):
            return line[len(raw) :]
        return None
    if line.startswith(prefix):
        return line[len(prefix) :]
    return None


def is_blank(line: Text) -> bool:
    return not line.strip()

