from pathlib import Path

from click.testing import CliRunner

from unipatch.cli import main

UNIFIED = "--- a/f.txt\n+++ b/f.txt\n@@ -1,2 +1,2 @@\n a\n-b\n+c\n"


def _flat(output: str) -> str:
    return " ".join(output.split())


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_detect(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", "2c2\n< a\n---\n> b\n")

    result = CliRunner().invoke(main, ["detect", str(patch)])

    assert result.exit_code == 0
    assert result.output.strip() == "normal"


def test_detect_unknown(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", "hello\n")

    result = CliRunner().invoke(main, ["detect", str(patch)])

    assert result.exit_code == 1
    assert "Patch format not recognized" in _flat(result.output)


def test_stats(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", UNIFIED)

    result = CliRunner().invoke(main, ["stats", str(patch)])

    assert result.exit_code == 0
    assert "a/f.txt" in result.output
    assert "unified" in result.output


def test_apply_to_target(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", UNIFIED)
    target = _write(tmp_path / "t.txt", "a\nb\n")

    result = CliRunner().invoke(main, ["apply", str(patch), str(target)])

    assert result.exit_code == 0, result.output
    assert "1 hunk(s)" in _flat(result.output)
    assert target.read_text(encoding="utf-8") == "a\nc\n"


def test_apply_reverse_to_output(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", UNIFIED)
    target = _write(tmp_path / "t.txt", "a\nc\n")
    out = tmp_path / "out.txt"

    result = CliRunner().invoke(main, ["apply", "-R", "-o", str(out), str(patch), str(target)])

    assert result.exit_code == 0, result.output
    assert out.read_text(encoding="utf-8") == "a\nb\n"
    assert target.read_text(encoding="utf-8") == "a\nc\n"


def test_apply_mismatch_reports_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", UNIFIED)
    target = _write(tmp_path / "t.txt", "a\nx\n")

    result = CliRunner().invoke(main, ["apply", str(patch), str(target)])

    assert result.exit_code == 1
    assert "error:" in result.output
    assert target.read_text(encoding="utf-8") == "a\nx\n"


def test_apply_tree_dry_run(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", UNIFIED)
    _write(tmp_path / "f.txt", "a\nb\n")

    result = CliRunner().invoke(main, ["apply", "--dry-run", str(patch)])

    assert result.exit_code == 0, result.output
    assert "Patch would apply cleanly." in result.output
    assert (tmp_path / "f.txt").read_text(encoding="utf-8") == "a\nb\n"


def test_apply_tree_with_config(tmp_path: Path, monkeypatch) -> None:
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", "--- f.txt\n+++ f.txt\n@@ -1 +1 @@\n-a\n+b\n")
    _write(work / "f.txt", "a\n")
    config = _write(tmp_path / "settings.yaml", "strip: 0\nio:\n  backup_suffix: .orig\n")

    result = CliRunner().invoke(main, ["--config", str(config), "apply", "-d", str(work), str(patch)])

    assert result.exit_code == 0, result.output
    assert (work / "f.txt").read_text(encoding="utf-8") == "b\n"
    assert (work / "f.txt.orig").read_text(encoding="utf-8") == "a\n"


def test_invalid_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", UNIFIED)
    config = _write(tmp_path / "settings.yaml", "strip: -3\n")

    result = CliRunner().invoke(main, ["--config", str(config), "detect", str(patch)])

    assert result.exit_code != 0
    assert "Invalid settings file" in result.output


def test_undecodable_patch_reports_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = tmp_path / "p.diff"
    patch.write_bytes(b"--- a/f.txt\n+++ b/f.txt\n@@ -1 +1 @@\n-\xff\n+b\n")

    for command in (["stats"], ["apply"], ["detect"]):
        result = CliRunner().invoke(main, [*command, str(patch)])

        assert result.exit_code == 1, command
        assert "error:" in result.output
        assert "Failed to read file" in _flat(result.output)
        assert result.exception is None or isinstance(result.exception, SystemExit)


def test_undecodable_target_reports_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = _write(tmp_path / "p.diff", UNIFIED)
    target = tmp_path / "t.txt"
    target.write_bytes(b"a\n\xff\n")

    result = CliRunner().invoke(main, ["apply", str(patch), str(target)])

    assert result.exit_code == 1
    assert "Failed to read file" in _flat(result.output)
    assert target.read_bytes() == b"a\n\xff\n"


def test_binary_flag_reads_raw_bytes(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    patch = tmp_path / "p.diff"
    patch.write_bytes(b"--- a/f.txt\n+++ b/f.txt\n@@ -1 +1 @@\n-\xff\n+b\n")
    target = tmp_path / "t.txt"
    target.write_bytes(b"\xff\n")

    result = CliRunner().invoke(main, ["--binary", "apply", str(patch), str(target)])

    assert result.exit_code == 0, result.output
    assert target.read_bytes() == b"b\n"
