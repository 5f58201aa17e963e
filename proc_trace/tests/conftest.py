from __future__ import annotations

import shutil
from pathlib import Path

import pytest

CLOCK_TICKS = 100


def stat_line(
    pid: int,
    *,
    comm: str = "worker",
    minflt: int = 0,
    majflt: int = 0,
    utime: int = 0,
    stime: int = 0,
    priority: int = 20,
    nice: int = 0,
    num_threads: int = 1,
    start_time: int = 4242,
) -> str:
    fields = [
        str(pid), f"({comm})", "S", "1", str(pid), str(pid), "0", "-1", "4194560",
        str(minflt), "0", str(majflt), "0", str(utime), str(stime), "0", "0",
        str(priority), str(nice), str(num_threads), "0", str(start_time), "123456789", "512",
    ]
    return " ".join(fields) + "\n"


def status_text(**values: int) -> str:
    labels = {
        "vm_rss": ("VmRSS", " kB"),
        "vm_anon": ("RssAnon", " kB"),
        "vm_file": ("RssFile", " kB"),
        "vm_shmem": ("RssShmem", " kB"),
        "vm_swap": ("VmSwap", " kB"),
        "voluntary_ctxt_switches": ("voluntary_ctxt_switches", ""),
        "nonvoluntary_ctxt_switches": ("nonvoluntary_ctxt_switches", ""),
    }
    lines = ["Name:\tworker", "State:\tS (sleeping)", "Threads:\t2"]
    for key, value in values.items():
        label, unit = labels[key]
        lines.append(f"{label}:\t{value:>8}{unit}")
    return "\n".join(lines) + "\n"


class FakeProc:
    """A minimal /proc tree on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.set_host_cpu(user=1000, system=500)

    def set_host_cpu(self, *, user: int, system: int) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / "stat").write_text(
            f"cpu  {user} 7 {system} 90000 12 0 3 0 0 0\n"
            f"cpu0 {user} 7 {system} 90000 12 0 3 0 0 0\n"
            "intr 1 2 3\nctxt 99\n",
            encoding="utf-8",
        )

    def add_process(
        self,
        pid: int,
        *,
        pss: list[int] | None = None,
        num_threads: int = 1,
        priority: int = 20,
        nice: int = 0,
        start_time: int = 4242,
    ) -> None:
        pdir = self.root / str(pid)
        (pdir / "task").mkdir(parents=True, exist_ok=True)
        (pdir / "stat").write_text(
            stat_line(pid, num_threads=num_threads, priority=priority, nice=nice, start_time=start_time),
            encoding="utf-8",
        )
        smaps = "".join(
            f"00400000-00452000 r-xp 00000000 08:02 173521 /usr/bin/worker\nSize: 328 kB\nPss: {v} kB\nPss_Dirty: 1 kB\n"
            for v in (pss or [])
        )
        (pdir / "smaps").write_text(smaps, encoding="utf-8")

    def set_thread(
        self,
        pid: int,
        tid: int,
        *,
        minflt: int = 0,
        majflt: int = 0,
        utime: int = 0,
        stime: int = 0,
        **status: int,
    ) -> None:
        tdir = self.root / str(pid) / "task" / str(tid)
        tdir.mkdir(parents=True, exist_ok=True)
        (tdir / "status").write_text(status_text(**status), encoding="utf-8")
        (tdir / "stat").write_text(
            stat_line(tid, minflt=minflt, majflt=majflt, utime=utime, stime=stime, priority=99, nice=9),
            encoding="utf-8",
        )

    def remove_process(self, pid: int) -> None:
        shutil.rmtree(self.root / str(pid))


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    return FakeProc(tmp_path / "proc")
