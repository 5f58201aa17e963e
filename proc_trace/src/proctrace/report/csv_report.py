from __future__ import annotations

import csv
import logging
import sys
import threading
from pathlib import Path
from typing import Callable, Iterable, TextIO

from proctrace.core.exceptions import ReportWriteError
from proctrace.core.utils import ensure_dir, safe_filename
from proctrace.sampling.models import Record

REPORT_FILE_TEMPLATE = "resource_trace_{}.csv"
ROW_TERMINATOR = "\r\n"

# (header, Record attribute, format)
COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("time", "timestamp", "d"),
    ("pss", "pss", "d"),
    ("vmRss", "vm_rss", "d"),
    ("vmAnon", "vm_anon", "d"),
    ("vmFile", "vm_file", "d"),
    ("vmShmem", "vm_shmem", "d"),
    ("vmSwap", "vm_swap", "d"),
    ("voluntaryCtxtSwitches", "voluntary_ctxt_switches", "d"),
    ("nonvoluntaryCtxtSwitches", "nonvoluntary_ctxt_switches", "d"),
    ("minflt", "minflt", "d"),
    ("majflt", "majflt", "d"),
    ("utime", "utime", ".3f"),
    ("stime", "stime", ".3f"),
    ("totalcputime", "total_cpu_time", ".3f"),
    ("gutime", "global_utime", ".3f"),
    ("gstime", "global_stime", ".3f"),
    ("gtotalcputime", "global_total_cpu_time", ".3f"),
    ("cpuOccupancyRate", "cpu_occupancy_rate", ".3f"),
    ("priority", "priority", "d"),
    ("nice", "nice", "d"),
    ("numThreads", "num_threads", "d"),
    ("startTime", "start_time", "d"),
)

HEADER: list[str] = [c[0] for c in COLUMNS]


def format_row(record: Record) -> list[str]:
    if not record.complete:
        return [str(record.timestamp)] + [""] * (len(COLUMNS) - 1)
    return [format(getattr(record, attr), fmt) for _, attr, fmt in COLUMNS]


def report_path(output_dir: str | Path, name: str) -> Path:
    return Path(output_dir) / REPORT_FILE_TEMPLATE.format(safe_filename(name))


class ReportSink:
    """Writes a run's records as CSV and echoes rows to the console."""

    def __init__(self, output_dir: str | Path = ".", *, echo: bool = True, stream: TextIO | None = None) -> None:
        self.output_dir = Path(output_dir)
        self.echo = echo
        self._stream = stream
        self._echo_lock = threading.Lock()
        self._log = logging.getLogger("proctrace.report")

    def echo_record(self, record: Record) -> None:
        if not self.echo:
            return
        stream = self._stream or sys.stdout
        line = ",".join(format_row(record)) + "\n"
        with self._echo_lock:
            stream.write(line)
            stream.flush()

    def echo_callback(self) -> Callable[[Record], None] | None:
        return self.echo_record if self.echo else None

    def write(self, name: str, records: Iterable[Record]) -> Path:
        out = report_path(self.output_dir, name)
        rows = 0
        try:
            ensure_dir(self.output_dir)
            with out.open("w", newline="", encoding="utf-8") as f:
                w = csv.writer(f, lineterminator=ROW_TERMINATOR)
                w.writerow(HEADER)
                for record in records:
                    w.writerow(format_row(record))
                    rows += 1
        except OSError as exc:
            raise ReportWriteError(f"Writing report {out} failed: {exc}") from exc
        self._log.info("report written", extra={"path": str(out), "rows": rows})
        return out
