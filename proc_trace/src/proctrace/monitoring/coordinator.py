from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from proctrace.core.config import MonitorConfig
from proctrace.core.exceptions import ParseError, ReportWriteError, ResolutionError
from proctrace.core.utils import monotonic_ms
from proctrace.monitoring.resolver import resolve_pid
from proctrace.procfs.fields import clock_ticks_per_second
from proctrace.procfs.reader import ProcfsReader
from proctrace.report.csv_report import ReportSink
from proctrace.report.summary import summarize_records
from proctrace.sampling.aggregator import SnapshotSource
from proctrace.sampling.engine import SampleEngine
from proctrace.sampling.models import MonitorRun, RunOutcome, RunStatus


class MonitorCoordinator:
    """Runs one independent sampling worker per target and collects outcomes."""

    def __init__(
        self,
        config: MonitorConfig,
        *,
        resolver: Callable[..., int] = resolve_pid,
        sink: ReportSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock_ticks: int | None = None,
    ) -> None:
        self.config = config
        self._resolver = resolver
        self._sink = sink or ReportSink(config.output_dir, echo=config.echo)
        self._sleep = sleep
        self._clock_ticks = clock_ticks or clock_ticks_per_second()
        self._reader = ProcfsReader(config.procfs_root)
        self._log = logging.getLogger("proctrace.coordinator")

    def run(self) -> list[RunOutcome]:
        outcomes: list[RunOutcome | None] = [None] * len(self.config.targets)
        threads: list[threading.Thread] = []
        started_ms = monotonic_ms()

        for i, target in enumerate(self.config.targets):

            def _work(slot: int = i, name: str = target) -> None:
                outcomes[slot] = self.monitor_target(name)

            t = threading.Thread(target=_work, name=f"monitor-{target}", daemon=True)
            threads.append(t)
            t.start()

        for t in threads:
            t.join()

        results = [
            o if o is not None else RunOutcome(name=n, status=RunStatus.ERROR, error="worker exited without outcome")
            for o, n in zip(outcomes, self.config.targets)
        ]
        for o in results:
            level = logging.INFO if o.ok else logging.ERROR
            self._log.log(
                level,
                "target %s: %s",
                o.name,
                o.status.value,
                extra={"target": o.name, "pid": o.pid, "records": o.records, "report": o.report_path, "error": o.error},
            )
        self._log.info(
            "all monitors finished",
            extra={"targets": len(results), "failed": sum(1 for o in results if not o.ok), "elapsed_ms": monotonic_ms() - started_ms},
        )
        return results

    def monitor_target(self, name: str) -> RunOutcome:
        """Resolve, sample and report one target; every failure becomes an outcome."""
        cfg = self.config
        try:
            pid = self._resolver(name, match=cfg.match, allow_ambiguous=cfg.allow_ambiguous)
        except ResolutionError as exc:
            self._log.error("resolution failed", extra={"target": name, "error": str(exc)})
            return RunOutcome(name=name, status=RunStatus.RESOLUTION_ERROR, error=str(exc))

        run = MonitorRun(name=name, pid=pid)
        engine = SampleEngine(
            run=run,
            source=SnapshotSource(self._reader, self._clock_ticks),
            duration=cfg.duration_seconds,
            interval=cfg.interval_seconds,
            max_consecutive_gaps=cfg.max_consecutive_gaps,
            on_record=self._sink.echo_callback(),
            sleep=self._sleep,
        )
        try:
            engine.run_to_completion()
        except ParseError as exc:
            self._log.error("parse failed, run aborted", extra={"target": name, "pid": pid, "error": str(exc)})
            return RunOutcome(name=name, status=RunStatus.PARSE_ERROR, pid=pid, records=len(run.records), error=str(exc))
        except Exception as exc:
            self._log.exception("monitor crashed", extra={"target": name, "pid": pid})
            return RunOutcome(name=name, status=RunStatus.ERROR, pid=pid, records=len(run.records), error=str(exc))

        try:
            path = self._sink.write(name, run.records)
        except ReportWriteError as exc:
            self._log.error("report write failed", extra={"target": name, "error": str(exc)})
            return RunOutcome(name=name, status=RunStatus.WRITE_ERROR, pid=pid, records=len(run.records), error=str(exc))

        summary = summarize_records(run.records)
        self._log.info("run summary", extra={"target": name, "pid": pid, **summary.as_dict()})

        if engine.gaps_exhausted():
            return RunOutcome(
                name=name,
                status=RunStatus.READ_ERROR,
                pid=pid,
                records=len(run.records),
                report_path=str(path),
                error=f"stopped after {engine.consecutive_gaps} consecutive failed samples",
            )
        return RunOutcome(name=name, status=RunStatus.OK, pid=pid, records=len(run.records), report_path=str(path))
