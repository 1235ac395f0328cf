"""Pipeline settings."""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple
import os

from .errors import ConfigurationError

ENV_PREFIX = "LEGACY_BRIDGE_"


@dataclass
class PipelineSettings:
    """Process-wide settings shared by every import job."""
    max_workers: int = 4
    extraction_timeout: float = 300.0
    phase_timeout: Optional[float] = None
    duplicate_threshold: float = 0.85
    default_batch_size: int = 100
    ledger_chunk_size: int = 100
    important_fields: Tuple[str, ...] = ("name", "email", "type")
    suggestion_threshold: float = 0.8

    def __post_init__(self):
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        if not 1 <= self.default_batch_size <= 1000:
            raise ConfigurationError("default_batch_size must be between 1 and 1000")
        if self.ledger_chunk_size < 1:
            raise ConfigurationError("ledger_chunk_size must be at least 1")
        if not 0 <= self.duplicate_threshold <= 1:
            raise ConfigurationError("duplicate_threshold must be between 0 and 1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineSettings":
        """Create settings from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "important_fields" in values:
            values["important_fields"] = tuple(values["important_fields"])
        return cls(**values)

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        """Create settings from LEGACY_BRIDGE_* environment variables."""
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = os.environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            try:
                if f.name == "important_fields":
                    values[f.name] = tuple(p.strip() for p in raw.split(",") if p.strip())
                elif f.name in ("max_workers", "default_batch_size", "ledger_chunk_size"):
                    values[f.name] = int(raw)
                else:
                    values[f.name] = float(raw)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}", e)
        return cls(**values)
