from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Snapshot:
    """Cumulative state of one process at one tick."""

    timestamp: int
    pss: int = 0
    vm_rss: int = 0
    vm_anon: int = 0
    vm_file: int = 0
    vm_shmem: int = 0
    vm_swap: int = 0
    voluntary_ctxt_switches: int = 0
    nonvoluntary_ctxt_switches: int = 0
    minflt: int = 0
    majflt: int = 0
    utime: float = 0.0
    stime: float = 0.0
    global_utime: float = 0.0
    global_stime: float = 0.0
    priority: int = 0
    nice: int = 0
    num_threads: int = 0
    start_time: int = 0

    @property
    def total_cpu_time(self) -> float:
        return self.utime + self.stime

    @property
    def global_total_cpu_time(self) -> float:
        return self.global_utime + self.global_stime


@dataclass(frozen=True)
class Record:
    """One report row: instantaneous values plus deltas since the previous tick."""

    timestamp: int
    pss: int = 0
    vm_rss: int = 0
    vm_anon: int = 0
    vm_file: int = 0
    vm_shmem: int = 0
    vm_swap: int = 0
    voluntary_ctxt_switches: int = 0
    nonvoluntary_ctxt_switches: int = 0
    minflt: int = 0
    majflt: int = 0
    utime: float = 0.0
    stime: float = 0.0
    total_cpu_time: float = 0.0
    global_utime: float = 0.0
    global_stime: float = 0.0
    global_total_cpu_time: float = 0.0
    cpu_occupancy_rate: float = 0.0
    priority: int = 0
    nice: int = 0
    num_threads: int = 0
    start_time: int = 0
    complete: bool = True

    @classmethod
    def gap(cls, timestamp: int) -> "Record":
        return cls(timestamp=timestamp, complete=False)


class RunStatus(str, Enum):
    OK = "ok"
    RESOLUTION_ERROR = "resolution_error"
    READ_ERROR = "read_error"
    PARSE_ERROR = "parse_error"
    WRITE_ERROR = "write_error"
    ERROR = "error"


@dataclass
class MonitorRun:
    name: str
    pid: int
    records: list[Record] = field(default_factory=list)

    @property
    def gap_count(self) -> int:
        return sum(1 for r in self.records if not r.complete)


@dataclass(frozen=True)
class RunOutcome:
    name: str
    status: RunStatus
    pid: int | None = None
    records: int = 0
    report_path: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.OK
