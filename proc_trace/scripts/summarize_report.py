from __future__ import annotations

import argparse
import sys
from pathlib import Path

from proctrace.report.summary import load_report, summarize_frame


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="summarize_report")
    p.add_argument("reports", nargs="+", help="resource_trace_*.csv files")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv or sys.argv[1:])
    for raw in args.reports:
        path = Path(raw)
        if not path.exists():
            print(f"[FAIL] {path} not found")
            return 2
        s = summarize_frame(load_report(path))
        print(f"{path.name}: samples={s.samples} gaps={s.gaps}")
        print(f"  rss peak={s.peak_rss_kb}kB mean={s.mean_rss_kb:.0f}kB pss peak={s.peak_pss_kb}kB")
        print(
            f"  cpu occupancy mean={s.mean_cpu_occupancy:.3f} p95={s.p95_cpu_occupancy:.3f} "
            f"peak={s.peak_cpu_occupancy:.3f} total={s.total_cpu_seconds:.3f}s majflt={s.total_majflt}"
        )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
