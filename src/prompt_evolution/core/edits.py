from __future__ import annotations

import logging
import re
from pathlib import Path

from prompt_evolution.core.errors import EditError, EditErrorKind
from prompt_evolution.core.types import AppendToEnd, Edit, InsertAtLine, Mutation, ReplacePattern

logger = logging.getLogger(__name__)


def apply_mutation(working_dir: Path, mutation: Mutation) -> list[Path]:
    """Apply every edit of ``mutation`` to the working set, in declared order.

    Returns the files touched. The first failing edit raises ``EditError`` and
    the remaining edits are not attempted; earlier edits stay on disk until the
    caller restores its snapshot.
    """
    applied: list[Path] = []
    for index, edit in enumerate(mutation.edits):
        path = apply_edit(working_dir, edit)
        logger.debug("Mutation %r edit %d (%s) applied to %s", mutation.name, index, edit.kind, path)
        if path not in applied:
            applied.append(path)
    return applied


def apply_edit(working_dir: Path, edit: Edit) -> Path:
    path = _resolve_target(working_dir, edit.target_file)
    if not path.is_file():
        raise EditError(EditErrorKind.FILE_NOT_FOUND, edit.target_file, "file does not exist")

    # Byte-level read/write keeps line endings exactly as they were.
    content = path.read_bytes().decode("utf-8")

    if isinstance(edit, InsertAtLine):
        content = insert_at_line(content, edit.line, edit.content, edit.target_file)
    elif isinstance(edit, ReplacePattern):
        content = replace_pattern(content, edit.pattern, edit.replacement, edit.target_file)
    elif isinstance(edit, AppendToEnd):
        content = append_to_end(content, edit.content)
    else:
        raise TypeError(f"Unsupported edit type: {type(edit).__name__}")

    path.write_bytes(content.encode("utf-8"))
    return path


def insert_at_line(content: str, line: int, new_content: str, target_file: str = "<memory>") -> str:
    lines = content.split("\n")
    # A trailing newline terminates the last line; it does not start another.
    line_count = len(lines) - 1 if content == "" or content.endswith("\n") else len(lines)
    if line < 0 or line > line_count:
        raise EditError(
            EditErrorKind.OUT_OF_RANGE,
            target_file,
            f"line {line} outside 0..{line_count}",
        )
    lines.insert(line, new_content)
    return "\n".join(lines)


def replace_pattern(content: str, pattern: str, replacement: str, target_file: str = "<memory>") -> str:
    # Replacement text is literal: no group references are expanded.
    new_content, count = re.subn(pattern, lambda _: replacement, content, count=1)
    if count == 0:
        raise EditError(EditErrorKind.PATTERN_NOT_FOUND, target_file, f"no match for {pattern!r}")
    return new_content


def append_to_end(content: str, new_content: str) -> str:
    if content and not content.endswith("\n"):
        content += "\n"
    return content + new_content


def _resolve_target(working_dir: Path, target_file: str) -> Path:
    root = working_dir.resolve()
    path = (root / target_file).resolve()
    if root != path and root not in path.parents:
        raise EditError(EditErrorKind.FILE_NOT_FOUND, target_file, "path escapes the working set")
    return path
