from __future__ import annotations

import argparse
import logging
import sys

from proctrace.core.config import build_config
from proctrace.core.exceptions import ConfigError
from proctrace.core.utils import platform_summary, setup_logging
from proctrace.monitoring.coordinator import MonitorCoordinator


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="proc-trace", description="Sample /proc resource usage of running processes.")
    p.add_argument("targets", nargs="+", help="Process names (or pids) to monitor")
    p.add_argument("--duration", type=int, default=60, help="Total monitoring time in seconds")
    p.add_argument("--interval", type=int, default=10, help="Sampling interval in seconds")
    p.add_argument("--output-dir", type=str, default=".")
    p.add_argument("--match", choices=["exact", "substring"], default="exact")
    p.add_argument("--allow-ambiguous", action="store_true", help="Use the lowest pid when several processes match")
    p.add_argument("--max-gaps", type=int, default=3, help="Consecutive failed samples before a run stops")
    p.add_argument("--no-echo", action="store_true", help="Do not print rows to stdout")
    p.add_argument("--procfs-root", type=str, default="/proc", help="Root of the proc filesystem to read")
    p.add_argument("--log-dir", type=str, default=None)
    p.add_argument("--log-level", type=str, default="INFO")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    setup_logging(args.log_dir, level=args.log_level)
    log = logging.getLogger("proctrace")

    try:
        config = build_config(
            duration_seconds=args.duration,
            interval_seconds=args.interval,
            targets=args.targets,
            output_dir=args.output_dir,
            echo=not args.no_echo,
            match=args.match,
            allow_ambiguous=args.allow_ambiguous,
            max_consecutive_gaps=args.max_gaps,
            procfs_root=args.procfs_root,
        )
    except ConfigError as exc:
        log.error("invalid configuration: %s", exc)
        return 2

    log.info("starting", extra={"platform": dict(platform_summary()), "config": config.model_dump()})
    outcomes = MonitorCoordinator(config).run()
    return 0 if all(o.ok for o in outcomes) else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
