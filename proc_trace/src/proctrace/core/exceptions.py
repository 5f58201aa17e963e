from __future__ import annotations


class ProcTraceError(Exception):
    """Base error for the process tracer."""


class ConfigError(ProcTraceError):
    pass


class ResolutionError(ProcTraceError):
    pass


class AmbiguousResolutionError(ResolutionError):
    def __init__(self, name: str, candidates: list[int]) -> None:
        self.name = name
        self.candidates = list(candidates)
        super().__init__(
            f"{name!r} matched {len(self.candidates)} processes: "
            + ", ".join(str(pid) for pid in self.candidates)
        )


class ProcfsReadError(ProcTraceError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Read {path} failed: {reason}")


class ParseError(ProcTraceError):
    pass


class ReportWriteError(ProcTraceError):
    pass
