from __future__ import annotations

import argparse
import sys

import psutil

from proctrace.core.exceptions import ProcTraceError
from proctrace.monitoring.resolver import resolve_pid
from proctrace.procfs.fields import clock_ticks_per_second, parse_global_cpu
from proctrace.procfs.reader import ProcfsReader
from proctrace.sampling.aggregator import SnapshotSource


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="doctor")
    p.add_argument("--procfs-root", type=str, default="/proc")
    p.add_argument("--target", type=str, default=None, help="Process name or pid to test-sample")
    p.add_argument("--match", choices=["exact", "substring"], default="exact")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv or sys.argv[1:])
    reader = ProcfsReader(args.procfs_root)

    ticks = clock_ticks_per_second()
    print(f"[OK] Clock ticks per second: {ticks}")

    try:
        user, system = parse_global_cpu(reader.read("stat"), ticks)
    except ProcTraceError as exc:
        print(f"[FAIL] Host CPU counters unreadable: {exc}")
        return 2
    print(f"[OK] Host CPU: user={user:.3f}s system={system:.3f}s")
    print(f"[OK] psutil {psutil.__version__}, {len(psutil.pids())} processes visible")

    if not args.target:
        return 0

    try:
        pid = resolve_pid(args.target, match=args.match)
    except ProcTraceError as exc:
        print(f"[FAIL] {exc}")
        return 2
    print(f"[OK] {args.target!r} resolved to pid {pid}")

    try:
        snap = SnapshotSource(reader, ticks).take(pid, timestamp=0)
    except ProcTraceError as exc:
        print(f"[FAIL] Sampling pid {pid}: {exc}")
        return 2
    print(
        f"[OK] Sampled pid {pid}: threads={snap.num_threads} rss={snap.vm_rss}kB "
        f"pss={snap.pss}kB cpu={snap.total_cpu_time:.3f}s"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
