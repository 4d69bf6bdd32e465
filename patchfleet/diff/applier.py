"""Strict hunk application against a file's prior content.

Content is modelled as a list of lines without terminators, obtained by
splitting on ``"\\n"``. A file ending in a newline therefore has a trailing
empty element, and joining on ``"\\n"`` gives the exact same bytes back.
Nothing is added or stripped.

A hunk carrying a ``\\ No newline at end of file`` marker must end at the
end of the file. That trailing empty element is then checked against the
hunk's source side and written according to its target side, so adding or
removing the final newline is a real change.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Union

from patchfleet.errors import PatchDoesNotApplyError
from patchfleet.models import DELETED, ApplyOutcome, FileDiff, Hunk


def split_content(text: str) -> List[str]:
    return text.split("\n")


def join_content(lines: Sequence[str]) -> str:
    return "\n".join(lines)


def _hunk_start(hunk: Hunk) -> int:
    """0-based index of the first prior line the hunk covers.

    A hunk with an empty source range (``@@ -N,0 ...``) inserts after line
    N, so its index is N itself.
    """
    if not hunk.source_lines:
        return hunk.source_start
    return hunk.source_start - 1


def apply_hunks(prior: Sequence[str], hunks: Sequence[Hunk], *, path: Optional[str] = None) -> List[str]:
    """Apply ``hunks`` in order, failing on any mismatch.

    Raises:
        PatchDoesNotApplyError: a hunk is out of order, out of range, or its
            context/removed lines differ from ``prior``.
    """
    result: List[str] = []
    cursor = 0
    for index, hunk in enumerate(hunks, start=1):
        expected = hunk.source_lines
        start = _hunk_start(hunk)
        end = start + len(expected)
        if start < cursor:
            raise PatchDoesNotApplyError(
                f"Hunk #{index} overlaps the previous hunk or is out of order",
                path=path,
                details={"hunk": index, "source_start": hunk.source_start},
            )
        if start < 0 or end > len(prior):
            raise PatchDoesNotApplyError(
                f"Hunk #{index} is outside the file ({len(prior)} lines)",
                path=path,
                details={"hunk": index, "source_start": hunk.source_start, "file_lines": len(prior)},
            )
        actual = list(prior[start:end])
        if actual != expected:
            raise PatchDoesNotApplyError(
                f"Hunk #{index} does not match at line {hunk.source_start}",
                path=path,
                details={"hunk": index, "expected": expected, "actual": actual},
            )
        result.extend(prior[cursor:start])
        result.extend(hunk.target_lines)
        cursor = end
        if hunk.has_newline_marker:
            _check_final_newline(prior, hunk, end, index, path)
            if not hunk.target_no_newline:
                result.append("")
            cursor = len(prior)
    result.extend(prior[cursor:])
    return result


def _check_final_newline(prior: Sequence[str], hunk: Hunk, end: int, index: int, path: Optional[str]) -> None:
    """Verify the hunk ends at the end of ``prior`` with the final newline it expects."""
    if not prior:
        return
    if hunk.source_no_newline:
        matches = end == len(prior)
    else:
        matches = end == len(prior) - 1 and prior[end] == ""
    if not matches:
        raise PatchDoesNotApplyError(
            f"Hunk #{index} does not match the newline at end of file",
            path=path,
            details={"hunk": index, "expects_final_newline": not hunk.source_no_newline},
        )


def apply(prior: Optional[Sequence[str]], file_diff: FileDiff) -> Union[List[str], ApplyOutcome]:
    """Compute the new content of ``file_diff``'s file.

    Returns ``DELETED`` when the entry removes the file. If ``prior`` is
    given for a deletion the hunks are still checked against it, so a
    deletion prepared against different content is reported as a conflict.
    A creation (no source path) starts from an empty file.
    """
    if file_diff.is_deletion:
        if prior is not None:
            apply_hunks(prior, file_diff.hunks, path=file_diff.source_path)
        return DELETED

    if file_diff.source_path is None or prior is None:
        prior = []
    return apply_hunks(prior, file_diff.hunks, path=file_diff.path)
