from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from unipatch.apply import apply
from unipatch.errors import DiffError
from unipatch.fileops import FileSystemPatchFileOps, apply_patch
from unipatch.formats import detect_format, parse, parse_multiple
from unipatch.logger import configure_logging
from unipatch.settings import LoggingSettings, LogLevel, Settings, find_settings_file, load_settings

console = Console()
err_console = Console(stderr=True)


def _read(path: Path, settings: Settings):
    try:
        if settings.io.binary:
            return path.read_bytes()
        with path.open("rt", encoding=settings.io.encoding, errors=settings.io.errors, newline="") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as e:
        hint = "Use --binary or set io.encoding" if isinstance(e, UnicodeDecodeError) else None
        raise DiffError(f"Failed to read file: {path}: {e}", hint=hint) from e


def _write(path: Path, content, settings: Settings) -> None:
    try:
        if settings.io.backup_suffix and path.exists():
            backup = path.with_name(path.name + settings.io.backup_suffix)
            backup.write_bytes(path.read_bytes())
        if isinstance(content, bytes):
            path.write_bytes(content)
            return
        with path.open("wt", encoding=settings.io.encoding, errors=settings.io.errors, newline="") as fh:
            fh.write(content)
    except (OSError, UnicodeEncodeError) as e:
        raise DiffError(f"Failed to write file: {path}: {e}") from e


def _report(exc: DiffError) -> None:
    err_console.print(Text.assemble(("error: ", "bold red"), str(exc)))
    if exc.hint:
        err_console.print(f"  hint: {exc.hint}", markup=False, highlight=False)


def _label(value) -> str:
    if value is None:
        return "-"
    return value.decode("utf-8", "replace") if isinstance(value, bytes) else value


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Settings file (.yaml/.yml/.json5). Defaults to ./.unipatch.yaml when present.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--binary", is_flag=True, help="Operate on raw bytes.")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool, binary: bool) -> None:
    """Parse and apply normal, unified, context and git diffs."""
    if config_path is None:
        config_path = find_settings_file(Path.cwd())
    try:
        settings = load_settings(config_path) if config_path else Settings()
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Invalid settings file {config_path}: {e}") from e

    if binary:
        settings.io.binary = True
    logging_settings = settings.logging or LoggingSettings()
    if verbose:
        logging_settings = logging_settings.model_copy(update={"default_level": LogLevel.debug})

    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    configure_logging(logging_settings)
    ctx.obj = settings


@main.command()
@click.argument("patch", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def detect(settings: Settings, patch: Path) -> None:
    """Print the dialect of PATCH."""
    try:
        fmt = detect_format(_read(patch, settings))
    except DiffError as e:
        _report(e)
        sys.exit(1)
    console.print(fmt.value)


@main.command()
@click.argument("patch", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def stats(settings: Settings, patch: Path) -> None:
    """Print per-file change counts of PATCH."""
    try:
        text = _read(patch, settings)
        fmt = detect_format(text)
        diffs = parse_multiple(text)
    except DiffError as e:
        _report(e)
        sys.exit(1)

    table = Table(title=f"{patch.name} ({fmt.value})")
    table.add_column("old")
    table.add_column("new")
    table.add_column("hunks", justify="right")
    table.add_column("added", justify="right", style="green")
    table.add_column("deleted", justify="right", style="red")
    for diff in diffs:
        st = diff.stats()
        table.add_row(
            _label(diff.old_file),
            _label(diff.new_file),
            str(st.hunks_applied),
            str(st.lines_added),
            str(st.lines_deleted),
        )
    console.print(table)


@main.command(name="apply")
@click.argument("patch", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument(
    "target",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Write the result here instead of TARGET.")
@click.option("-R", "--reverse", is_flag=True, help="Apply the patch in reverse.")
@click.option("--dry-run", is_flag=True, help="Check the patch without writing anything.")
@click.option("-p", "--strip", type=click.IntRange(min=0), default=None, help="Leading path components to strip from patch file names.")
@click.option(
    "-d",
    "--directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Base directory for multi-file patches.",
)
@click.pass_obj
def apply_cmd(
    settings: Settings,
    patch: Path,
    target: Optional[Path],
    output: Optional[Path],
    reverse: bool,
    dry_run: bool,
    strip: Optional[int],
    directory: Path,
) -> None:
    """
    Apply PATCH.

    With TARGET, PATCH must describe a single file and is applied to TARGET.
    Without it, every file named by PATCH is patched under --directory.
    """
    try:
        text = _read(patch, settings)
    except DiffError as e:
        _report(e)
        sys.exit(1)

    if target is None:
        ops = FileSystemPatchFileOps(
            directory,
            encoding=settings.io.encoding,
            errors=settings.io.errors,
            binary=settings.io.binary,
            backup_suffix=settings.io.backup_suffix,
        )
        summary, outcome, _changes, _statuses, _errs = apply_patch(
            text,
            directory,
            strip=settings.strip if strip is None else strip,
            reverse=reverse,
            dry_run=dry_run,
            ops=ops,
        )
        (console if outcome == "success" else err_console).print(summary, markup=False, highlight=False)
        if outcome != "success":
            sys.exit(1)
        return

    try:
        diff = parse(text)
        if reverse:
            diff = diff.reverse()
        new_text, result = apply(_read(target, settings), diff)
    except DiffError as e:
        _report(e)
        sys.exit(1)

    destination = output or target
    if not dry_run:
        try:
            _write(destination, new_text, settings)
        except DiffError as e:
            _report(e)
            sys.exit(1)

    verb = "would patch" if dry_run else "patched"
    console.print(
        Text.assemble(
            f"{verb} {destination}: {result.hunks_applied} hunk(s), ",
            (f"+{result.lines_added}", "green"),
            " ",
            (f"-{result.lines_deleted}", "red"),
        )
    )


if __name__ == "__main__":
    main()
