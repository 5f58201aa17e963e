from __future__ import annotations

import os

from proctrace.core.exceptions import ParseError

# /proc/<pid>/status label -> snapshot field
STATUS_FIELDS: dict[str, str] = {
    "VmRSS": "vm_rss",
    "RssAnon": "vm_anon",
    "RssFile": "vm_file",
    "RssShmem": "vm_shmem",
    "VmSwap": "vm_swap",
    "voluntary_ctxt_switches": "voluntary_ctxt_switches",
    "nonvoluntary_ctxt_switches": "nonvoluntary_ctxt_switches",
}

# /proc/<pid>/stat field index (0-based, see proc(5)) -> snapshot field
STAT_FIELDS: dict[str, int] = {
    "minflt": 9,
    "majflt": 11,
    "utime": 13,
    "stime": 14,
    "priority": 17,
    "nice": 18,
    "num_threads": 19,
    "start_time": 21,
}

# Stat fields reported in clock ticks and converted to seconds.
STAT_TICK_FIELDS = frozenset({"utime", "stime"})

# Index into the "cpu " line of /proc/stat, after the label.
GLOBAL_CPU_FIELDS: dict[str, int] = {
    "user": 0,
    "system": 2,
}

GLOBAL_CPU_LABEL = "cpu"
PSS_LABEL = "Pss"
UNIT_SUFFIX = "kB"


def clock_ticks_per_second() -> int:
    return int(os.sysconf("SC_CLK_TCK"))


def _to_int(raw: str, what: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ParseError(f"Malformed {what}: {raw!r}") from exc


def parse_labeled_value(line: str, label: str) -> int:
    """Parse ``"<label>:\\t<value>[ kB]"`` into an int."""
    prefix = f"{label}:"
    if not line.startswith(prefix):
        raise ParseError(f"Line does not start with {prefix!r}: {line!r}")
    value = line[len(prefix):].strip()
    if value.endswith(UNIT_SUFFIX):
        value = value[: -len(UNIT_SUFFIX)].rstrip()
    return _to_int(value, label)


def parse_status(text: str) -> dict[str, int]:
    out = {field: 0 for field in STATUS_FIELDS.values()}
    for line in text.splitlines():
        label, sep, _ = line.partition(":")
        if not sep:
            continue
        field = STATUS_FIELDS.get(label)
        if field is None:
            continue
        out[field] = parse_labeled_value(line, label)
    return out


def split_stat(text: str) -> list[str]:
    """Split a stat record into positional fields.

    The command name sits in parentheses and may itself contain spaces or
    parentheses, so everything up to the last ')' is taken as fields 0 and 1.
    """
    text = text.strip()
    open_idx = text.find("(")
    close_idx = text.rfind(")")
    if open_idx == -1 or close_idx < open_idx:
        return text.split()
    head = text[:open_idx].split()
    comm = text[open_idx : close_idx + 1]
    return head + [comm] + text[close_idx + 1 :].split()


def parse_stat(text: str, clock_ticks: int) -> dict[str, float | int]:
    fields = split_stat(text)
    needed = max(STAT_FIELDS.values())
    if len(fields) <= needed:
        raise ParseError(f"Stat record has {len(fields)} fields, need {needed + 1}")
    out: dict[str, float | int] = {}
    for name, idx in STAT_FIELDS.items():
        value = _to_int(fields[idx], name)
        out[name] = value / clock_ticks if name in STAT_TICK_FIELDS else value
    return out


def parse_global_cpu(text: str, clock_ticks: int) -> tuple[float, float]:
    """Host-wide cumulative (user, system) CPU seconds from /proc/stat."""
    for line in text.splitlines():
        parts = line.split()
        if not parts or parts[0] != GLOBAL_CPU_LABEL:
            continue
        values = parts[1:]
        if len(values) <= max(GLOBAL_CPU_FIELDS.values()):
            raise ParseError(f"Short cpu line: {line!r}")
        user = _to_int(values[GLOBAL_CPU_FIELDS["user"]], "cpu user") / clock_ticks
        system = _to_int(values[GLOBAL_CPU_FIELDS["system"]], "cpu system") / clock_ticks
        return user, system
    raise ParseError("No aggregate cpu line in stat")


def parse_pss(text: str) -> int:
    total = 0
    for line in text.splitlines():
        if line.startswith(f"{PSS_LABEL}:"):
            total += parse_labeled_value(line, PSS_LABEL)
    return total
