from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from proctrace.core.exceptions import ProcfsReadError
from proctrace.sampling.aggregator import SnapshotSource
from proctrace.sampling.models import MonitorRun, Record, Snapshot


class EngineState(str, Enum):
    SEEDING = "seeding"
    STEADY = "steady"
    FINISHED = "finished"


def cpu_occupancy_rate(process_delta: float, host_delta: float) -> float:
    """Share of host CPU time spent in the process; 0.0 when the host did not advance."""
    if host_delta <= 0:
        return 0.0
    return process_delta / host_delta


def diff_snapshots(prev: Snapshot, cur: Snapshot) -> Record:
    utime = cur.utime - prev.utime
    stime = cur.stime - prev.stime
    global_utime = cur.global_utime - prev.global_utime
    global_stime = cur.global_stime - prev.global_stime
    total = cur.total_cpu_time - prev.total_cpu_time
    global_total = cur.global_total_cpu_time - prev.global_total_cpu_time
    return Record(
        timestamp=cur.timestamp,
        pss=cur.pss,
        vm_rss=cur.vm_rss,
        vm_anon=cur.vm_anon,
        vm_file=cur.vm_file,
        vm_shmem=cur.vm_shmem,
        vm_swap=cur.vm_swap,
        voluntary_ctxt_switches=cur.voluntary_ctxt_switches - prev.voluntary_ctxt_switches,
        nonvoluntary_ctxt_switches=cur.nonvoluntary_ctxt_switches - prev.nonvoluntary_ctxt_switches,
        minflt=cur.minflt - prev.minflt,
        majflt=cur.majflt - prev.majflt,
        utime=utime,
        stime=stime,
        total_cpu_time=total,
        global_utime=global_utime,
        global_stime=global_stime,
        global_total_cpu_time=global_total,
        cpu_occupancy_rate=cpu_occupancy_rate(total, global_total),
        priority=cur.priority,
        nice=cur.nice,
        num_threads=cur.num_threads,
        start_time=cur.start_time,
    )


class SampleEngine:
    """Fixed-interval sampling loop for one process.

    Elapsed time is nominal: it advances by ``interval`` per tick regardless
    of how long the reads and the sleep actually took.
    """

    def __init__(
        self,
        *,
        run: MonitorRun,
        source: SnapshotSource,
        duration: int,
        interval: int,
        max_consecutive_gaps: int = 3,
        on_record: Callable[[Record], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.run = run
        self._source = source
        self._duration = duration
        self._interval = interval
        self._max_gaps = max_consecutive_gaps
        self._on_record = on_record
        self._sleep = sleep
        self._log = logging.getLogger("proctrace.engine")

        self.state = EngineState.SEEDING
        self.ticks = 0
        self.previous: Snapshot | None = None
        self.consecutive_gaps = 0

    @property
    def elapsed(self) -> int:
        return self.ticks * self._interval

    def tick(self) -> Record | None:
        """Take one sample; returns the emitted record, if any.

        ParseError propagates: a malformed field in a known kernel file
        means the interface changed and the run cannot be trusted.
        """
        timestamp = self.elapsed
        try:
            snapshot = self._source.take(self.run.pid, timestamp)
        except ProcfsReadError as exc:
            self.consecutive_gaps += 1
            self._log.warning(
                "incomplete sample",
                extra={"target": self.run.name, "pid": self.run.pid, "time": timestamp, "error": str(exc)},
            )
            if self.state is EngineState.SEEDING:
                return None
            return self._emit(Record.gap(timestamp))

        self.consecutive_gaps = 0
        if self.state is EngineState.SEEDING:
            self.previous = snapshot
            self.state = EngineState.STEADY
            return None

        assert self.previous is not None
        record = diff_snapshots(self.previous, snapshot)
        self.previous = snapshot
        return self._emit(record)

    def _emit(self, record: Record) -> Record:
        self.run.records.append(record)
        if self._on_record is not None:
            self._on_record(record)
        return record

    def gaps_exhausted(self) -> bool:
        return self.consecutive_gaps >= self._max_gaps

    def run_to_completion(self) -> MonitorRun:
        self._log.info(
            "sampling started",
            extra={"target": self.run.name, "pid": self.run.pid, "duration": self._duration, "interval": self._interval},
        )
        while self.elapsed < self._duration:
            self.tick()
            if self.gaps_exhausted():
                self._log.error(
                    "giving up after consecutive failed samples",
                    extra={"target": self.run.name, "pid": self.run.pid, "gaps": self.consecutive_gaps},
                )
                break
            self._sleep(self._interval)
            self.ticks += 1
        self.state = EngineState.FINISHED
        self._log.info(
            "sampling finished",
            extra={"target": self.run.name, "pid": self.run.pid, "records": len(self.run.records)},
        )
        return self.run
