from __future__ import annotations

import json
import logging
import platform
import re
import sys
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping

_UNSAFE_NAME_RE = re.compile(r"[\s/\\]+")

_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
}


def ensure_dir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def safe_filename(name: str) -> str:
    cleaned = _UNSAFE_NAME_RE.sub("_", name.strip())
    return cleaned or "unnamed"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        payload.update(
            (k, v) for k, v in record.__dict__.items() if not k.startswith("_") and k not in _RECORD_ATTRS
        )
        return json.dumps(payload, default=str, ensure_ascii=False, separators=(",", ":"))


def setup_logging(log_dir: str | None, level: str = "INFO") -> None:
    level_num = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level_num)
    root.handlers.clear()

    # Console goes to stderr; stdout carries the echoed report rows.
    console = logging.StreamHandler(stream=sys.stderr)
    console.setLevel(level_num)
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(console)

    if not log_dir:
        return
    ensure_dir(log_dir)

    text_handler = RotatingFileHandler(
        Path(log_dir) / "proctrace.log", maxBytes=5_000_000, backupCount=5, encoding="utf-8"
    )
    text_handler.setLevel(level_num)
    text_handler.setFormatter(console.formatter)
    root.addHandler(text_handler)

    json_handler = RotatingFileHandler(
        Path(log_dir) / "proctrace.jsonl", maxBytes=10_000_000, backupCount=3, encoding="utf-8"
    )
    json_handler.setLevel(level_num)
    json_handler.setFormatter(JsonFormatter())
    root.addHandler(json_handler)


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def platform_summary() -> Mapping[str, Any]:
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "machine": platform.machine(),
    }
