"""Per-process resource tracing from /proc."""

__version__ = "0.1.0"
