from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from proctrace.core.exceptions import ConfigError


class MonitorConfig(BaseModel):
    duration_seconds: int = 60
    interval_seconds: int = 10
    targets: list[str] = Field(default_factory=list)
    output_dir: str = "."
    echo: bool = True
    match: Literal["exact", "substring"] = "exact"
    allow_ambiguous: bool = False
    max_consecutive_gaps: int = 3
    procfs_root: str = "/proc"

    @field_validator("duration_seconds", "interval_seconds")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("max_consecutive_gaps")
    @classmethod
    def _gaps_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_consecutive_gaps must be >= 1")
        return v

    @field_validator("targets")
    @classmethod
    def _dedupe_targets(cls, v: list[str]) -> list[str]:
        out: list[str] = []
        for name in v:
            name = name.strip()
            if name and name not in out:
                out.append(name)
        return out

    @model_validator(mode="after")
    def _check_run_shape(self) -> "MonitorConfig":
        if not self.targets:
            raise ValueError("at least one target process name is required")
        if self.interval_seconds > self.duration_seconds:
            raise ValueError("interval_seconds must be <= duration_seconds")
        return self


def build_config(**overrides: Any) -> MonitorConfig:
    raw = {k: v for k, v in overrides.items() if v is not None}
    try:
        return MonitorConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
