from __future__ import annotations

import dataclasses

import pytest

from proctrace.core.exceptions import ParseError, ProcfsReadError
from proctrace.sampling.engine import EngineState, SampleEngine, cpu_occupancy_rate, diff_snapshots
from proctrace.sampling.models import MonitorRun, Snapshot


class ScriptedSource:
    """Hands out prepared snapshots (or raises prepared errors) in order."""

    def __init__(self, items: list[Snapshot | Exception]) -> None:
        self._items = list(items)
        self.calls = 0

    def take(self, pid: int, timestamp: int) -> Snapshot:
        item = self._items[min(self.calls, len(self._items) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return dataclasses.replace(item, timestamp=timestamp)


class GrowingSource:
    """Every call adds fixed increments to all cumulative counters."""

    def __init__(self) -> None:
        self.calls = 0

    def take(self, pid: int, timestamp: int) -> Snapshot:
        n = self.calls
        self.calls += 1
        return Snapshot(
            timestamp=timestamp,
            vm_rss=1000 + n,
            voluntary_ctxt_switches=10 * n,
            minflt=7 * n,
            utime=0.01 * n,
            stime=0.01 * n,
            global_utime=0.1 * n,
            global_stime=0.1 * n,
        )


def _engine(source, duration: int = 60, interval: int = 10, **kw) -> SampleEngine:
    return SampleEngine(
        run=MonitorRun(name="worker", pid=42),
        source=source,
        duration=duration,
        interval=interval,
        sleep=lambda _s: None,
        **kw,
    )


def test_occupancy_ratio() -> None:
    assert cpu_occupancy_rate(0.020, 0.200) == pytest.approx(0.100)


def test_occupancy_zero_host_delta() -> None:
    assert cpu_occupancy_rate(0.5, 0.0) == 0.0


def test_diff_subtracts_cumulative_and_keeps_instantaneous() -> None:
    prev = Snapshot(
        timestamp=0, pss=10, vm_rss=100, voluntary_ctxt_switches=5, nonvoluntary_ctxt_switches=1,
        minflt=100, majflt=2, utime=1.0, stime=0.5, global_utime=50.0, global_stime=20.0,
        priority=20, num_threads=3, start_time=99,
    )
    cur = Snapshot(
        timestamp=10, pss=12, vm_rss=90, voluntary_ctxt_switches=9, nonvoluntary_ctxt_switches=4,
        minflt=160, majflt=2, utime=1.015, stime=0.505, global_utime=50.15, global_stime=20.05,
        priority=20, num_threads=4, start_time=99,
    )
    r = diff_snapshots(prev, cur)
    assert r.timestamp == 10
    assert r.pss == 12
    assert r.vm_rss == 90
    assert r.voluntary_ctxt_switches == 4
    assert r.nonvoluntary_ctxt_switches == 3
    assert r.minflt == 60
    assert r.majflt == 0
    assert r.utime == pytest.approx(0.015)
    assert r.stime == pytest.approx(0.005)
    assert r.total_cpu_time == pytest.approx(0.020)
    assert r.global_total_cpu_time == pytest.approx(0.200)
    assert r.cpu_occupancy_rate == pytest.approx(0.100)
    assert r.num_threads == 4
    assert r.start_time == 99
    assert r.complete


def test_first_tick_only_seeds() -> None:
    engine = _engine(GrowingSource())
    assert engine.state is EngineState.SEEDING
    assert engine.tick() is None
    assert engine.state is EngineState.STEADY
    assert engine.run.records == []


@pytest.mark.parametrize(("duration", "interval"), [(60, 10), (10, 1), (3, 3), (7, 2)])
def test_record_count(duration: int, interval: int) -> None:
    engine = _engine(GrowingSource(), duration=duration, interval=interval)
    run = engine.run_to_completion()
    assert len(run.records) == -(-duration // interval) - 1
    assert engine.state is EngineState.FINISHED


def test_each_row_has_its_own_whole_second_time() -> None:
    run = _engine(GrowingSource(), duration=5, interval=1).run_to_completion()
    times = [r.timestamp for r in run.records]
    assert times == [1, 2, 3, 4]
    assert all(isinstance(t, int) for t in times)


def test_deltas_and_timestamps_over_a_run() -> None:
    run = _engine(GrowingSource(), duration=40, interval=10).run_to_completion()
    assert [r.timestamp for r in run.records] == [10, 20, 30]
    for r in run.records:
        assert r.voluntary_ctxt_switches == 10
        assert r.minflt == 7
        assert r.cpu_occupancy_rate == pytest.approx(0.1)


def test_sleeps_nominal_interval_each_tick() -> None:
    slept: list[float] = []
    engine = SampleEngine(
        run=MonitorRun(name="worker", pid=42),
        source=GrowingSource(),
        duration=30,
        interval=10,
        sleep=slept.append,
    )
    engine.run_to_completion()
    assert slept == [10, 10, 10]


def test_echo_callback_sees_each_record() -> None:
    seen = []
    run = _engine(GrowingSource(), duration=30, interval=10, on_record=seen.append).run_to_completion()
    assert seen == run.records


def test_read_failure_in_steady_state_emits_gap() -> None:
    base = Snapshot(timestamp=0, utime=1.0, global_utime=10.0)
    later = Snapshot(timestamp=0, utime=1.3, global_utime=13.0)
    source = ScriptedSource([base, ProcfsReadError("/proc/42/smaps", "No such file"), later])
    engine = _engine(source, duration=30, interval=10)
    run = engine.run_to_completion()

    assert [r.complete for r in run.records] == [False, True]
    assert run.records[0].timestamp == 10
    # the delta after a gap spans back to the last good sample
    assert run.records[1].utime == pytest.approx(0.3)
    assert run.records[1].cpu_occupancy_rate == pytest.approx(0.1)
    assert run.gap_count == 1


def test_read_failure_while_seeding_keeps_seeding() -> None:
    source = ScriptedSource([ProcfsReadError("/proc/stat", "denied"), Snapshot(timestamp=0), Snapshot(timestamp=0)])
    engine = _engine(source, duration=30, interval=10)
    run = engine.run_to_completion()
    assert len(run.records) == 1
    assert run.records[0].timestamp == 20


def test_consecutive_failures_end_the_run() -> None:
    source = ScriptedSource([Snapshot(timestamp=0), ProcfsReadError("/proc/42/stat", "gone")])
    engine = _engine(source, duration=600, interval=10, max_consecutive_gaps=3)
    run = engine.run_to_completion()
    assert engine.gaps_exhausted()
    assert len(run.records) == 3
    assert source.calls == 4


def test_parse_error_propagates() -> None:
    source = ScriptedSource([Snapshot(timestamp=0), ParseError("Malformed RssShmem: '1x'")])
    with pytest.raises(ParseError):
        _engine(source).run_to_completion()
