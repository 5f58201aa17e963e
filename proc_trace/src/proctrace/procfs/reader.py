from __future__ import annotations

import os
from pathlib import Path

from proctrace.core.exceptions import ProcfsReadError


class ProcfsReader:
    """Reads kernel pseudo-files below a procfs root.

    Paths are relative to the root ("stat", "1234/task/1235/status").
    Every failure surfaces as ProcfsReadError; callers decide how bad it is.
    """

    def __init__(self, root: str | Path = "/proc") -> None:
        self.root = Path(root)

    def path(self, relative: str) -> Path:
        return self.root / relative

    def read(self, relative: str) -> str:
        p = self.path(relative)
        try:
            return p.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ProcfsReadError(str(p), exc.strerror or type(exc).__name__) from exc

    def list_dir(self, relative: str) -> list[str]:
        p = self.path(relative)
        try:
            return sorted(os.listdir(p))
        except OSError as exc:
            raise ProcfsReadError(str(p), exc.strerror or type(exc).__name__) from exc
