from __future__ import annotations

import logging
import os
from typing import Literal

import psutil

from proctrace.core.exceptions import AmbiguousResolutionError, ResolutionError

_log = logging.getLogger("proctrace.resolver")


def _matches(info: dict, target: str, match: str) -> bool:
    name = info.get("name") or ""
    if match == "exact":
        return name == target
    cmdline = info.get("cmdline") or []
    return target in name or target in " ".join(cmdline)


def find_candidates(target: str, match: Literal["exact", "substring"] = "exact") -> list[int]:
    own_pid = os.getpid()
    out: list[int] = []
    for p in psutil.process_iter(["pid", "name", "cmdline"]):
        info = p.info
        if info["pid"] == own_pid:
            continue
        if _matches(info, target, match):
            out.append(int(info["pid"]))
    return sorted(out)


def resolve_pid(
    target: str,
    *,
    match: Literal["exact", "substring"] = "exact",
    allow_ambiguous: bool = False,
) -> int:
    """Resolve a process-name filter (or a literal pid) to exactly one pid."""
    if target.isdigit():
        pid = int(target)
        if not psutil.pid_exists(pid):
            raise ResolutionError(f"No process with pid {pid}")
        return pid

    candidates = find_candidates(target, match)
    if not candidates:
        raise ResolutionError(f"No running process matches {target!r} ({match} match)")
    if len(candidates) > 1:
        if not allow_ambiguous:
            raise AmbiguousResolutionError(target, candidates)
        _log.warning(
            "ambiguous match, using lowest pid",
            extra={"target": target, "candidates": candidates, "pid": candidates[0]},
        )
    return candidates[0]
