from pathlib import Path

import pytest

from unipatch.apply import apply, apply_bytes
from unipatch.errors import (
    HunkHeaderError,
    HunkMismatchError,
    MissingSeparatorError,
    NoHunksError,
    TrailingContentError,
    UnexpectedEofError,
)
from unipatch.formats.normal import (
    is_normal_diff,
    parse_command_line,
    parse_normal,
    parse_normal_bytes,
    parse_normal_multiple,
)
from unipatch.models import Delete, HunkRange, Insert, Stats

DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "normal-diff"


def _read(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


def test_change_command():
    diff = parse_normal("2c2\n< old\n---\n> new\n")

    assert diff.old_file is None and diff.new_file is None
    assert len(diff.hunks) == 1
    hunk = diff.hunks[0]
    assert hunk.old_range == HunkRange(2, 1)
    assert hunk.new_range == HunkRange(2, 1)
    assert hunk.lines == (Delete("old", "\n"), Insert("new", "\n"))


def test_delete_command_keeps_new_anchor():
    diff = parse_normal("1,3d0\n< a\n< b\n< c\n")

    hunk = diff.hunks[0]
    assert hunk.old_range == HunkRange(1, 3)
    # The new side anchor is stored exactly as written after the `d`.
    assert hunk.new_range == HunkRange(0, 0)
    assert [ln.content for ln in hunk.lines] == ["a", "b", "c"]
    assert all(isinstance(ln, Delete) for ln in hunk.lines)


def test_add_command_at_file_start():
    diff = parse_normal("0a1,2\n> x\n> y\n")

    hunk = diff.hunks[0]
    assert hunk.old_range == HunkRange(1, 0)
    assert hunk.new_range == HunkRange(1, 2)
    assert hunk.lines == (Insert("x", "\n"), Insert("y", "\n"))


def test_multiline_change_stats():
    diff = parse_normal("2,3c2,4\n< b\n< c\n---\n> B\n> C\n> D\n")

    assert diff.stats() == Stats(lines_added=3, lines_deleted=2, hunks_applied=1)
    assert diff.hunks[0].is_consistent()


def test_missing_separator():
    with pytest.raises(MissingSeparatorError) as exc:
        parse_normal("2c2\n< old\n> new\n")
    assert isinstance(exc.value, HunkHeaderError)
    assert exc.value.line == 3


def test_eof_before_separator():
    with pytest.raises(UnexpectedEofError):
        parse_normal("2c2\n< old\n")


def test_empty_input_has_no_hunks():
    with pytest.raises(NoHunksError):
        parse_normal("")
    with pytest.raises(NoHunksError):
        parse_normal("\n\n")


def test_malformed_first_line():
    with pytest.raises(HunkHeaderError) as exc:
        parse_normal("hello\n")
    assert not isinstance(exc.value, TrailingContentError)
    assert exc.value.line == 1


def test_trailing_garbage():
    with pytest.raises(TrailingContentError) as exc:
        parse_normal("2d1\n< b\nfoo\n")
    assert exc.value.line == 3


def test_reversed_range_rejected():
    with pytest.raises(HunkHeaderError):
        parse_normal("3,1d0\n< a\n")


def test_short_body_at_eof():
    with pytest.raises(UnexpectedEofError):
        parse_normal("1,2d0\n< a\n")


def test_short_body_before_next_command():
    with pytest.raises(HunkMismatchError):
        parse_normal("1,2d0\n< a\n3d1\n< c\n")


def test_long_body():
    with pytest.raises(HunkMismatchError):
        parse_normal("1d0\n< a\n< b\n")


def test_blank_lines_between_hunks_are_skipped():
    diff = parse_normal("1d0\n< a\n\n3d1\n< c\n")
    assert [h.old_range for h in diff.hunks] == [HunkRange(1, 1), HunkRange(3, 1)]


def test_no_newline_marker():
    text = "1c1\n< a\n\\ No newline at end of file\n---\n> b\n\\ No newline at end of file\n"
    diff = parse_normal(text)

    assert diff.hunks[0].lines == (Delete("a", ""), Insert("b", ""))
    new_text, _ = apply("a", diff)
    assert new_text == "b"


def test_crlf_endings_are_preserved():
    diff = parse_normal("2c2\r\n< b\r\n---\r\n> c\r\n")

    assert diff.hunks[0].lines == (Delete("b", "\r\n"), Insert("c", "\r\n"))
    new_text, _ = apply("a\r\nb\r\n", diff)
    assert new_text == "a\r\nc\r\n"


def test_bytes_parsing():
    diff = parse_normal_bytes(b"2c2\n< line 2\n---\n> LINE 2\n")

    assert diff.hunks[0].lines == (Delete(b"line 2", b"\n"), Insert(b"LINE 2", b"\n"))
    new_text, stats = apply_bytes(b"line 1\nline 2\n", diff)
    assert new_text == b"line 1\nLINE 2\n"
    assert stats == Stats(1, 1, 1)


def test_bytes_content_is_not_validated():
    diff = parse_normal_bytes(b"1c1\n< \xff\xfe\n---\n> ok\n")
    new_text, _ = apply_bytes(b"\xff\xfe\n", diff)
    assert new_text == b"ok\n"


def test_multiple_returns_single_diff():
    diffs = parse_normal_multiple("1d0\n< a\n")
    assert len(diffs) == 1
    assert diffs[0].hunks[0].old_range == HunkRange(1, 1)


def test_parse_command_line():
    cmd = parse_command_line("5,7c8")
    assert cmd is not None
    assert (cmd.old_start, cmd.old_end, cmd.command, cmd.new_start, cmd.new_end) == (5, 7, "c", 8, 8)
    assert parse_command_line("5,7x8") is None
    assert parse_command_line(" 1d0") is None
    assert parse_command_line("\u0661d\u0660") is None


@pytest.mark.parametrize(
    "text",
    ["2c2\n< a\n---\n> b\n", "\n\n1,3d0\n< a\n", "0a1\n> x\n", b"10,12c10\n"],
)
def test_detects_normal(text):
    assert is_normal_diff(text)


@pytest.mark.parametrize(
    "text",
    [
        "--- a/file\n+++ b/file\n",
        "@@ -1,3 +1,3 @@\n",
        "diff --git a/f b/f\n",
        "*** a/f\n--- b/f\n",
        "",
        "hello world\n",
        "\u0661c\u0661\n< a\n---\n> b\n",
    ],
)
def test_rejects_other_formats(text):
    assert not is_normal_diff(text)


@pytest.mark.parametrize(
    "old_name,new_name,diff_name,hunks",
    [
        ("old1.txt", "new1.txt", "change_and_add.diff", 2),
        ("old2.txt", "new2.txt", "delete_insert_delete.diff", 3),
        ("old3.txt", "new3.txt", "add_only.diff", 2),
        ("old4.txt", "new4.txt", "complex.diff", 3),
    ],
)
def test_fixture_round_trip(old_name, new_name, diff_name, hunks):
    old, new = _read(old_name), _read(new_name)
    diff = parse_normal(_read(diff_name))

    assert len(diff.hunks) == hunks
    patched, stats = apply(old, diff)
    assert patched == new
    assert stats == diff.stats()

    restored, _ = apply(new, diff.reverse())
    assert restored == old
