from __future__ import annotations

import logging
from typing import Any

from proctrace.core.exceptions import ProcfsReadError
from proctrace.procfs.fields import (
    STATUS_FIELDS,
    parse_global_cpu,
    parse_pss,
    parse_stat,
    parse_status,
)
from proctrace.procfs.reader import ProcfsReader
from proctrace.sampling.models import Snapshot

# Summed across threads.
ADDITIVE_STAT_FIELDS = ("minflt", "majflt", "utime", "stime")
# Process attributes, read once from <pid>/stat.
PROCESS_STAT_FIELDS = ("priority", "nice", "num_threads", "start_time")

GLOBAL_STAT_PATH = "stat"


class ThreadAggregator:
    def __init__(self, reader: ProcfsReader, clock_ticks: int) -> None:
        self._reader = reader
        self._clock_ticks = clock_ticks
        self._log = logging.getLogger("proctrace.aggregator")

    def thread_ids(self, pid: int) -> list[int]:
        return sorted(int(t) for t in self._reader.list_dir(f"{pid}/task") if t.isdigit())

    def aggregate(self, pid: int) -> dict[str, Any]:
        """Sum per-thread fields of ``pid`` into one process total.

        The task listing and ``<pid>/stat`` must be readable; a thread that
        exits between listing and reading is skipped.
        """
        totals: dict[str, Any] = {field: 0 for field in STATUS_FIELDS.values()}
        totals.update({field: 0 for field in ADDITIVE_STAT_FIELDS})
        totals["utime"] = 0.0
        totals["stime"] = 0.0

        for tid in self.thread_ids(pid):
            try:
                status_text = self._reader.read(f"{pid}/task/{tid}/status")
                stat_text = self._reader.read(f"{pid}/task/{tid}/stat")
            except ProcfsReadError as exc:
                self._log.warning("thread skipped", extra={"pid": pid, "tid": tid, "error": str(exc)})
                continue
            status = parse_status(status_text)
            stat = parse_stat(stat_text, self._clock_ticks)
            for field, value in status.items():
                totals[field] += value
            for field in ADDITIVE_STAT_FIELDS:
                totals[field] += stat[field]

        process_stat = parse_stat(self._reader.read(f"{pid}/stat"), self._clock_ticks)
        for field in PROCESS_STAT_FIELDS:
            totals[field] = int(process_stat[field])
        return totals


class SnapshotSource:
    """Builds a full Snapshot: host CPU counters, PSS and the thread aggregate."""

    def __init__(self, reader: ProcfsReader, clock_ticks: int) -> None:
        self._reader = reader
        self._clock_ticks = clock_ticks
        self.aggregator = ThreadAggregator(reader, clock_ticks)

    def take(self, pid: int, timestamp: int) -> Snapshot:
        global_utime, global_stime = parse_global_cpu(
            self._reader.read(GLOBAL_STAT_PATH), self._clock_ticks
        )
        pss = parse_pss(self._reader.read(f"{pid}/smaps"))
        totals = self.aggregator.aggregate(pid)
        return Snapshot(
            timestamp=timestamp,
            pss=pss,
            global_utime=global_utime,
            global_stime=global_stime,
            **totals,
        )
