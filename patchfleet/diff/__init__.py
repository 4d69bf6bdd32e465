"""Unified diff parsing and strict hunk application.

Parsing turns the diff text into ``FileDiff`` records once per run; the
applier computes a file's new lines (or the ``DELETED`` outcome) from its
prior content.
"""

from patchfleet.diff.applier import apply, apply_hunks, join_content, split_content
from patchfleet.diff.parser import load_diff, parse_diff

__all__ = ["apply", "apply_hunks", "join_content", "split_content", "load_diff", "parse_diff"]
