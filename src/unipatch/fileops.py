from __future__ import annotations

import os
import pathlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from unipatch.apply import apply
from unipatch.errors import DiffError, PatchError
from unipatch.formats import parse_multiple
from unipatch.logger import logger
from unipatch.models import Diff, Stats

DEV_NULL = "/dev/null"

Content = Union[str, bytes]


class FileApplyStatus(str, Enum):
    Create = "create"
    Update = "update"
    Rename = "rename"
    Delete = "delete"


class PatchFileOps(ABC):
    """
    Abstract contract for file operations used when applying patches to a tree.
    Implementations must handle path safety and track changes map.
    """

    @abstractmethod
    def exists(self, rel: str) -> bool: ...

    @abstractmethod
    def open(self, rel: str) -> Content: ...

    @abstractmethod
    def write(self, rel: str, content: Content) -> None: ...

    @abstractmethod
    def delete(self, rel: str) -> None: ...

    @property
    @abstractmethod
    def changes_map(self) -> Dict[str, str]:
        """
        A map of relative file paths to change kind: 'created' | 'updated' | 'deleted'.
        """
        ...


class FileSystemPatchFileOps(PatchFileOps):
    """
    File-backed implementation that enforces path safety under base_path and
    records change kinds.
    """

    def __init__(
        self,
        base_path: pathlib.Path,
        *,
        encoding: str = "utf-8",
        errors: str = "strict",
        binary: bool = False,
        backup_suffix: Optional[str] = None,
    ):
        self._base_path = base_path
        self._encoding = encoding
        self._errors = errors
        self._binary = binary
        self._backup_suffix = backup_suffix
        self._changes: Dict[str, str] = {}

    def _resolve_safe_path(self, rel: str) -> pathlib.Path:
        if rel.startswith("/") or rel.startswith("~"):
            raise DiffError(f"Absolute paths are not allowed: {rel}")
        abs_path = (self._base_path / rel).resolve()
        base_resolved = self._base_path.resolve()
        if abs_path == base_resolved or base_resolved in abs_path.parents:
            return abs_path
        raise DiffError(f"Path escapes project root: {rel}")

    def _record(self, rel: str, change: str) -> None:
        prev = self._changes.get(rel)
        if prev is None:
            self._changes[rel] = change
            return
        if change == "deleted":
            self._changes[rel] = change
        elif change == "updated" and prev != "deleted":
            self._changes[rel] = change

    def _backup(self, path: pathlib.Path) -> None:
        if self._backup_suffix and path.exists():
            backup = path.with_name(path.name + self._backup_suffix)
            backup.write_bytes(path.read_bytes())

    def exists(self, rel: str) -> bool:
        return self._resolve_safe_path(rel).exists()

    def open(self, rel: str) -> Content:
        path = self._resolve_safe_path(rel)
        if self._binary:
            return path.read_bytes()
        with path.open("rt", encoding=self._encoding, errors=self._errors, newline="") as fh:
            return fh.read()

    def write(self, rel: str, content: Content) -> None:
        path = self._resolve_safe_path(rel)
        existed = path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        self._backup(path)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            with path.open("wt", encoding=self._encoding, errors=self._errors, newline="") as fh:
                fh.write(content)
        self._record(rel, "updated" if existed else "created")

    def delete(self, rel: str) -> None:
        path = self._resolve_safe_path(rel)
        self._backup(path)
        path.unlink(missing_ok=True)
        self._record(rel, "deleted")

    @property
    def changes_map(self) -> Dict[str, str]:
        return self._changes


def strip_components(label: Optional[Content], strip: int) -> Optional[str]:
    """Drop `strip` leading path components from a patch label (patch -p)."""
    if label is None:
        return None
    name = os.fsdecode(label) if isinstance(label, bytes) else label
    name = name.strip()
    if name == DEV_NULL:
        return None
    parts = [p for p in name.split("/") if p]
    if strip >= len(parts):
        raise DiffError(
            f"Cannot strip {strip} component(s) from {name!r}",
            hint="Lower the strip level (-p)",
        )
    return "/".join(parts[strip:])


def resolve_targets(diff: Diff, strip: int) -> Tuple[Optional[str], Optional[str]]:
    """Return (old_path, new_path); None marks a created or deleted file."""
    if diff.old_file is None and diff.new_file is None:
        raise DiffError(
            "Patch carries no file names",
            hint="Apply it to an explicit target file instead",
        )
    old_path = strip_components(diff.old_file, strip)
    new_path = strip_components(diff.new_file, strip)
    if old_path is None and new_path is None:
        raise DiffError("Both sides of the patch are /dev/null")
    return old_path, new_path


@dataclass
class _PlannedChange:
    status: FileApplyStatus
    old_path: Optional[str]
    new_path: Optional[str]
    stats: Stats


class _StagedTree:
    """
    In-memory view of the tree as the file sections planned so far leave it.
    Later sections read from here, so several sections may patch one file.
    """

    def __init__(self, file_ops: PatchFileOps) -> None:
        self._ops = file_ops
        # Relative path -> new content; None marks a deleted file.
        self.contents: Dict[str, Optional[Content]] = {}

    def exists(self, rel: str) -> bool:
        if rel in self.contents:
            return self.contents[rel] is not None
        return self._ops.exists(rel)

    def read(self, rel: str) -> Content:
        if rel in self.contents:
            content = self.contents[rel]
            if content is None:
                raise DiffError(
                    f"File was deleted by an earlier section: {rel}",
                    hint="Each file may only be patched after it exists",
                )
            return content
        try:
            return self._ops.open(rel)
        except (OSError, UnicodeDecodeError) as e:
            raise DiffError(
                f"Failed to read file: {rel}",
                hint=f"{type(e).__name__}: {e}",
            ) from e

    def stage(self, rel: str, content: Optional[Content]) -> None:
        self.contents[rel] = content


def _plan_change(
    diff: Diff, tree: _StagedTree, strip: int, binary: bool
) -> _PlannedChange:
    old_path, new_path = resolve_targets(diff, strip)
    if old_path is None:
        if tree.exists(new_path):
            raise DiffError(
                f"File already exists: {new_path}",
                hint="The patch creates this file; remove it or patch it as an update",
            )
        original: Content = b"" if binary else ""
    else:
        original = tree.read(old_path)
        if new_path is not None and new_path != old_path and tree.exists(new_path):
            raise DiffError(
                f"Rename target already exists: {new_path}",
                hint=f"Renaming {old_path} would overwrite it",
            )
    new_content, stats = apply(original, diff)

    if new_path is None:
        if new_content:
            raise DiffError(
                f"File {old_path} still has content after a delete patch",
                hint="The patch does not remove the whole file",
            )
        status = FileApplyStatus.Delete
    elif old_path is None:
        status = FileApplyStatus.Create
    elif old_path != new_path:
        status = FileApplyStatus.Rename
    else:
        status = FileApplyStatus.Update

    if new_path is not None:
        tree.stage(new_path, new_content)
    if status in (FileApplyStatus.Delete, FileApplyStatus.Rename):
        tree.stage(old_path, None)
    return _PlannedChange(status, old_path, new_path, stats)


def _merge_changes(planned: List[_PlannedChange]) -> Dict[str, _PlannedChange]:
    """Fold sections that touch the same file into one entry per file."""
    merged: Dict[str, _PlannedChange] = {}
    for change in planned:
        key = change.new_path or change.old_path or ""
        prev = merged.get(key)
        if prev is None:
            merged[key] = change
            continue
        # A follow-up update keeps the file's first status (created, renamed).
        status = prev.status if change.status == FileApplyStatus.Update else change.status
        merged[key] = _PlannedChange(
            status,
            prev.old_path,
            change.new_path,
            Stats(
                lines_added=prev.stats.lines_added + change.stats.lines_added,
                lines_deleted=prev.stats.lines_deleted + change.stats.lines_deleted,
                hunks_applied=prev.stats.hunks_applied + change.stats.hunks_applied,
            ),
        )
    return merged


def apply_patch(
    text: Content,
    base_path: pathlib.Path,
    *,
    strip: int = 1,
    reverse: bool = False,
    dry_run: bool = False,
    ops: Optional[PatchFileOps] = None,
) -> Tuple[str, str, Dict[str, str], Dict[str, FileApplyStatus], List[PatchError]]:
    """
    Apply a (possibly multi-file) patch under base_path.

    Every file section is applied in memory first, on top of the sections
    before it; files are only written when all sections succeed. Returns
    (summary_text, outcome_name, changes_map, status_map, errors).
    changes_map values: 'created' | 'updated' | 'deleted'.
    """
    binary = isinstance(text, bytes)
    file_ops = ops or FileSystemPatchFileOps(base_path, binary=binary)
    tree = _StagedTree(file_ops)
    errors: List[PatchError] = []
    planned: List[_PlannedChange] = []

    try:
        diffs = parse_multiple(text)
    except DiffError as e:
        errors.append(PatchError.from_exception(e))
        diffs = []

    for diff in diffs:
        if reverse:
            diff = diff.reverse()
        label = diff.new_file if diff.new_file is not None else diff.old_file
        filename = os.fsdecode(label) if isinstance(label, bytes) else label
        if filename == DEV_NULL and diff.old_file is not None:
            filename = os.fsdecode(diff.old_file) if isinstance(diff.old_file, bytes) else diff.old_file
        try:
            planned.append(_plan_change(diff, tree, strip, binary))
        except DiffError as e:
            errors.append(PatchError.from_exception(e, filename=filename))

    merged = _merge_changes(planned)
    status_map: Dict[str, FileApplyStatus] = {}
    if not errors:
        status_map = {key: change.status for key, change in merged.items()}
        if not dry_run:
            for rel, content in tree.contents.items():
                try:
                    if content is None:
                        file_ops.delete(rel)
                    else:
                        file_ops.write(rel, content)
                except (OSError, DiffError) as e:
                    errors.append(
                        PatchError(
                            msg=f"Failed to apply change to file: {rel}",
                            hint=f"{type(e).__name__}: {e}",
                            filename=rel,
                        )
                    )

    summary, outcome = _summarize(merged, status_map, errors, file_ops, dry_run)
    logger.info("apply_patch", outcome=outcome, files=len(status_map), errors=len(errors))
    return summary, outcome, file_ops.changes_map, status_map, errors


def _summarize(
    merged: Dict[str, _PlannedChange],
    status_map: Dict[str, FileApplyStatus],
    errors: List[PatchError],
    file_ops: PatchFileOps,
    dry_run: bool,
) -> Tuple[str, str]:
    lines: List[str] = []
    if errors:
        if file_ops.changes_map:
            lines.append("Patch application completed with errors. Applied files:")
            for f in sorted(file_ops.changes_map):
                lines.append(f"* {f}")
        else:
            lines.append("Patch application failed. No changes were applied.")
        lines.append("Errors:")
        for e in errors:
            loc = ""
            if e.filename and e.line is not None:
                loc = f"{e.filename}:{e.line}: "
            elif e.filename:
                loc = f"{e.filename}: "
            elif e.line is not None:
                loc = f"line {e.line}: "
            lines.append(f"* {loc}{e.msg}")
            if e.hint:
                lines.append(f"  Hint: {e.hint}")
        return "\n".join(lines), "fail"

    lines.append("Patch would apply cleanly." if dry_run else "Applied patch successfully.")
    groups = (
        (FileApplyStatus.Create, "Added files:"),
        (FileApplyStatus.Update, "Updated files:"),
        (FileApplyStatus.Rename, "Renamed files:"),
        (FileApplyStatus.Delete, "Deleted files:"),
    )
    for status, title in groups:
        files = sorted(f for f, s in status_map.items() if s == status)
        if not files:
            continue
        lines.append(title)
        for f in files:
            change = merged[f]
            name = f"{change.old_path} -> {f}" if status == FileApplyStatus.Rename else f
            lines.append(
                f"* {name} (+{change.stats.lines_added} -{change.stats.lines_deleted})"
            )
    return "\n".join(lines), "success"
