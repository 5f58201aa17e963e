from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from proctrace.report.csv_report import COLUMNS, HEADER
from proctrace.sampling.models import Record


@dataclass(frozen=True)
class RunSummary:
    samples: int
    gaps: int
    peak_rss_kb: int
    mean_rss_kb: float
    peak_pss_kb: int
    mean_cpu_occupancy: float
    p95_cpu_occupancy: float
    peak_cpu_occupancy: float
    total_cpu_seconds: float
    total_majflt: int

    def as_dict(self) -> dict[str, float | int]:
        return dict(self.__dict__)


def records_frame(records: Iterable[Record]) -> pd.DataFrame:
    """Report-shaped frame; gap rows keep their time and NaN elsewhere."""
    rows = []
    for r in records:
        if r.complete:
            rows.append({header: getattr(r, attr) for header, attr, _ in COLUMNS})
        else:
            rows.append({"time": r.timestamp})
    return pd.DataFrame(rows, columns=HEADER)


def load_report(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path, skipinitialspace=True)
    df.columns = [c.strip() for c in df.columns]
    return df


def summarize_frame(df: pd.DataFrame) -> RunSummary:
    complete = df.dropna(subset=["pss"])
    gaps = int(len(df) - len(complete))
    if complete.empty:
        return RunSummary(
            samples=0,
            gaps=gaps,
            peak_rss_kb=0,
            mean_rss_kb=0.0,
            peak_pss_kb=0,
            mean_cpu_occupancy=0.0,
            p95_cpu_occupancy=0.0,
            peak_cpu_occupancy=0.0,
            total_cpu_seconds=0.0,
            total_majflt=0,
        )
    occupancy = complete["cpuOccupancyRate"].to_numpy(dtype=float)
    return RunSummary(
        samples=int(len(complete)),
        gaps=gaps,
        peak_rss_kb=int(complete["vmRss"].max()),
        mean_rss_kb=float(complete["vmRss"].mean()),
        peak_pss_kb=int(complete["pss"].max()),
        mean_cpu_occupancy=float(np.mean(occupancy)),
        p95_cpu_occupancy=float(np.percentile(occupancy, 95)),
        peak_cpu_occupancy=float(np.max(occupancy)),
        total_cpu_seconds=float(complete["totalcputime"].sum()),
        total_majflt=int(complete["majflt"].sum()),
    )


def summarize_records(records: Iterable[Record]) -> RunSummary:
    return summarize_frame(records_frame(records))
