"""Unified diff parsing.

Turns diff text into an ordered list of ``FileDiff`` records using
``unidiff``. Parsing happens once, before any repository is touched, so a
malformed diff aborts the run without side effects.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from unidiff import PatchSet, UnidiffParseError
from unidiff.constants import LINE_TYPE_NO_NEWLINE

from patchfleet.errors import DiffParseError
from patchfleet.models import FileDiff, Hunk, HunkLine
from patchfleet.utils.logger import log_debug

DEV_NULL = "/dev/null"
_PREFIXES = ("a/", "b/")


def _clean_path(raw: Optional[str]) -> Optional[str]:
    """Strip the ``a/``/``b/`` prefix; ``/dev/null`` means no file."""
    if raw is None:
        return None
    path = raw.strip()
    if not path or path == DEV_NULL:
        return None
    for prefix in _PREFIXES:
        if path.startswith(prefix):
            return path[len(prefix):]
    return path


def _line_text(value: str) -> str:
    return value[:-1] if value.endswith("\n") else value


def _convert_hunk(hunk) -> Hunk:
    lines = []
    source_no_newline = target_no_newline = False
    for line in hunk:
        if line.is_added:
            lines.append(HunkLine("+", _line_text(line.value)))
        elif line.is_removed:
            lines.append(HunkLine("-", _line_text(line.value)))
        elif line.is_context:
            lines.append(HunkLine(" ", _line_text(line.value)))
        elif line.line_type == LINE_TYPE_NO_NEWLINE:
            # applies to the line right before the marker
            previous = lines[-1].kind if lines else None
            if previous is None:
                raise DiffParseError("No-newline marker without a preceding line")
            source_no_newline = source_no_newline or previous in ("-", " ")
            target_no_newline = target_no_newline or previous in ("+", " ")
    return Hunk(
        source_start=hunk.source_start,
        source_length=hunk.source_length,
        target_start=hunk.target_start,
        target_length=hunk.target_length,
        lines=tuple(lines),
        source_no_newline=source_no_newline,
        target_no_newline=target_no_newline,
    )


def parse_diff(text: str) -> List[FileDiff]:
    """Parse unified diff ``text`` into file entries, preserving diff order.

    Raises:
        DiffParseError: the text is not a valid unified diff, contains no
            file entries, or contains a binary file entry.
    """
    try:
        patch_set = PatchSet(text)
    except UnidiffParseError as e:
        raise DiffParseError(f"Invalid unified diff: {e}") from e

    file_diffs: List[FileDiff] = []
    for patched_file in patch_set:
        if patched_file.is_binary_file:
            raise DiffParseError(
                "Binary file entries are not supported",
                details={"path": patched_file.path},
            )
        source = _clean_path(patched_file.source_file)
        destination = _clean_path(patched_file.target_file)
        if source is None and destination is None:
            raise DiffParseError("Diff entry has neither a source nor a destination path")
        file_diffs.append(
            FileDiff(
                source_path=source,
                destination_path=destination,
                hunks=tuple(_convert_hunk(h) for h in patched_file),
            )
        )

    if not file_diffs:
        raise DiffParseError("Diff contains no file changes")

    log_debug("Diff parsed", files=[fd.path for fd in file_diffs])
    return file_diffs


def load_diff(path: Path | str) -> List[FileDiff]:
    """Read and parse the diff file at ``path``."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DiffParseError(f"Cannot read diff file {path}: {e}") from e
    return parse_diff(text)
