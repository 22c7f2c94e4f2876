"""Bounded call-stack snapshots for error context capture."""

from __future__ import annotations

import os
import traceback
from typing import Protocol


# Frames from this package are capture machinery, never the failure site.
_MACHINERY_DIR = os.path.dirname(os.path.abspath(__file__))


class StackSnapshot(Protocol):
    """Captures a bounded, innermost-first view of the current call stack."""

    def capture(self, max_depth: int) -> str:
        ...


class TracebackStackSnapshot:
    """StackSnapshot backed by traceback.extract_stack().

    Output is one `file:line function` line per frame, innermost first.
    """

    def __init__(self, skip_dirs: tuple[str, ...] = (_MACHINERY_DIR,)):
        self._skip_dirs = tuple(os.path.abspath(d) for d in skip_dirs)

    def _is_machinery(self, filename: str) -> bool:
        directory = os.path.dirname(os.path.abspath(filename))
        return directory in self._skip_dirs

    def capture(self, max_depth: int) -> str:
        if max_depth <= 0:
            return ""
        frames = list(reversed(traceback.extract_stack()))
        # Drop the leading run of machinery frames; later ones are real callers.
        start = 0
        while start < len(frames) and self._is_machinery(frames[start].filename):
            start += 1
        selected = frames[start:start + max_depth]
        return "".join(f"{f.filename}:{f.lineno} {f.name}\n" for f in selected)


class NullStackSnapshot:
    """StackSnapshot that captures nothing."""

    def capture(self, max_depth: int) -> str:
        return ""
