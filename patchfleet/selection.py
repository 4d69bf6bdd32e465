"""Interactive repository selection.

The candidate repositories are written to a temporary file, one per line
prefixed with ``[]``, and opened in the user's editor. Lines the user marks
with ``[X]`` are selected. Anything else on a non-blank line is an error;
the input is never guessed at.
"""
from __future__ import annotations

import os
import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from patchfleet.errors import SelectionError
from patchfleet.models import Repository

HEADER = "Select repositories to patch (with 'X'):"
SELECTED = "[X]"
UNSELECTED = "[]"


def build_selection_text(names: Sequence[str]) -> str:
    return "\n".join([HEADER, *(f"{UNSELECTED} {name}" for name in sorted(names))]) + "\n"


def parse_selection(text: str, repositories: Sequence[Repository]) -> List[Repository]:
    """Return the repositories marked ``[X]`` in ``text``, sorted by name.

    The first line is the header and is skipped, as are blank lines.

    Raises:
        SelectionError: a line has neither marker, names an unknown
            repository, or names the same repository twice.
    """
    by_name = {repo.name: repo for repo in repositories}
    seen = set()
    chosen: List[Repository] = []
    for line in text.split("\n")[1:]:
        if not line.strip():
            continue
        if line.startswith(SELECTED):
            selected, name = True, line[len(SELECTED):].strip()
        elif line.startswith(UNSELECTED):
            selected, name = False, line[len(UNSELECTED):].strip()
        else:
            raise SelectionError(f"Invalid input: {line}")
        if name not in by_name:
            raise SelectionError(f"Unknown repository in selection: {name or line}")
        if name in seen:
            raise SelectionError(f"Repository listed more than once: {name}")
        seen.add(name)
        if selected:
            chosen.append(by_name[name])
    return sorted(chosen, key=lambda r: r.name)


def _editor_command(editor: Optional[str]) -> List[str]:
    command = editor or os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    return shlex.split(command)


def edit_text(text: str, editor: Optional[str] = None) -> str:
    """Open ``text`` in an editor and return what the user saved."""
    fd, name = tempfile.mkstemp(prefix="patchfleet-", suffix=".txt")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        try:
            subprocess.run([*_editor_command(editor), str(path)], check=True)
        except (OSError, subprocess.CalledProcessError) as e:
            raise SelectionError(f"Editor failed: {e}") from e
        return path.read_text(encoding="utf-8")
    finally:
        path.unlink(missing_ok=True)


def prompt_for_selection(
    repositories: Sequence[Repository],
    editor: Optional[str] = None,
    edit: Callable[[str, Optional[str]], str] = edit_text,
) -> List[Repository]:
    """Let a human pick repositories; returns the chosen subset."""
    if not repositories:
        return []
    text = edit(build_selection_text([r.name for r in repositories]), editor)
    return parse_selection(text, repositories)
