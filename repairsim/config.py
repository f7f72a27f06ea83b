"""Simulation parameters: pydantic model plus YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from repairsim.errors import InvalidArgumentError

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


class SimulationConfig(BaseModel):
    """
    Parameters for one simulation run. Use from_mapping() to validate a dict
    (YAML section, CLI overrides); validation problems surface as
    InvalidArgumentError.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    # counts and seed are strict: True or 2.0 is rejected rather than coerced
    target_fixed_count: int = Field(default=100000, gt=0, strict=True, description="Stop after this many repairs")
    failure_rate: float = Field(default=0.4, gt=0, allow_inf_nan=False, description="lambda, per machine")
    repair_rate: float = Field(default=0.6, gt=0, allow_inf_nan=False, description="mu, per repairman")
    machine_count: int = Field(default=4, gt=0, strict=True)
    repairman_count: int = Field(default=1, gt=0, strict=True)
    seed: int | None = Field(default=None, ge=0, strict=True)

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> "SimulationConfig":
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            raise InvalidArgumentError(str(e)) from e

    def with_overrides(self, **overrides: Any) -> "SimulationConfig":
        """Copy with non-None overrides applied (and re-validated)."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return SimulationConfig.from_mapping(data)


def load_config(config_path: str | Path | None = None) -> SimulationConfig:
    """Load the `sim:` section of a YAML config; built-in defaults if the file is missing."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        if config_path is not None:
            raise FileNotFoundError(f"config file not found: {path}")
        return SimulationConfig()
    with open(path) as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise InvalidArgumentError(f"config root must be a mapping: {path}")
    return SimulationConfig.from_mapping(cfg.get("sim", {}))
