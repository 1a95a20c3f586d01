import pytest

from unipatch.errors import HunkHeaderError, NoHunksError, TrailingContentError, UnsupportedPatchError
from unipatch.formats.git import is_git_diff, parse_git, parse_git_bytes, parse_git_multiple, split_git_paths
from unipatch.models import HunkRange

GIT_PATCH = "\n".join(
    [
        "diff --git a/src/app.py b/src/app.py",
        "index 83db48f..bf269f4 100644",
        "--- a/src/app.py",
        "+++ b/src/app.py",
        "@@ -1,2 +1,2 @@",
        " import os",
        '-print("hi")',
        '+print("hello")',
        "diff --git a/old_name.txt b/new_name.txt",
        "similarity index 100%",
        "rename from old_name.txt",
        "rename to new_name.txt",
        "diff --git a/empty.txt b/empty.txt",
        "new file mode 100644",
        "index 0000000..e69de29",
        "diff --git a/gone.txt b/gone.txt",
        "deleted file mode 100644",
        "index 1234567..0000000",
        "--- a/gone.txt",
        "+++ /dev/null",
        "@@ -1 +0,0 @@",
        "-bye",
        "",
    ]
)


def test_parse_multiple_sections():
    diffs = parse_git_multiple(GIT_PATCH)

    assert [(d.old_file, d.new_file, len(d.hunks)) for d in diffs] == [
        ("a/src/app.py", "b/src/app.py", 1),
        ("a/old_name.txt", "b/new_name.txt", 0),
        ("/dev/null", "b/empty.txt", 0),
        ("a/gone.txt", "/dev/null", 1),
    ]
    assert diffs[0].hunks[0].old_range == HunkRange(1, 2)
    assert diffs[3].hunks[0].old_range == HunkRange(1, 1)
    assert diffs[3].hunks[0].new_range == HunkRange(0, 0)


def test_single_parser_rejects_second_section():
    with pytest.raises(TrailingContentError):
        parse_git(GIT_PATCH)


def test_commit_message_preamble_is_skipped():
    text = "From 1234 Mon Sep 17 00:00:00 2001\nSubject: fix\n\n" + GIT_PATCH
    assert len(parse_git_multiple(text)) == 4


def test_mode_change_only():
    diff = parse_git("diff --git a/run.sh b/run.sh\nold mode 100644\nnew mode 100755\n")
    assert diff.old_file == "a/run.sh"
    assert diff.hunks == ()


def test_binary_patch_unsupported():
    text = "diff --git a/img.png b/img.png\nindex 1..2 100644\nBinary files a/img.png and b/img.png differ\n"
    with pytest.raises(UnsupportedPatchError):
        parse_git(text)


def test_unknown_extended_header():
    with pytest.raises(HunkHeaderError):
        parse_git("diff --git a/f b/f\nsomething odd\n")


def test_malformed_diff_line():
    with pytest.raises(HunkHeaderError):
        parse_git("diff --git f g\n")


def test_file_header_without_hunks():
    with pytest.raises(NoHunksError):
        parse_git("diff --git a/f b/f\n--- a/f\n+++ b/f\n")


def test_bytes():
    diff = parse_git_bytes(GIT_PATCH.split("diff --git a/old_name.txt")[0].encode("utf-8"))
    assert diff.old_file == b"a/src/app.py"
    assert diff.new_file == b"b/src/app.py"


def test_split_paths_with_spaces():
    assert split_git_paths("a/my file.txt b/my file.txt") == ("a/my file.txt", "b/my file.txt")
    assert split_git_paths("a/x b/y") == ("a/x", "b/y")
    assert split_git_paths("x y") is None


def test_detection():
    assert is_git_diff(GIT_PATCH)
    assert is_git_diff(b"\ndiff --git a/f b/f\n")
    assert not is_git_diff("--- a/f\n+++ b/f\n")
    assert not is_git_diff("From 1234\ndiff --git a/f b/f\n")
