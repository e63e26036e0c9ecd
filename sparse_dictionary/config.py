from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError, field_validator

from .exceptions import InvalidConfigurationError


class SparseCodingConfig(BaseModel):
    """Parameters of one dictionary learning run."""
    model_config = ConfigDict(extra="forbid")

    atoms: PositiveInt
    lambda1: float = Field(0.0, ge=0.0)
    lambda2: float = Field(0.0, ge=0.0)
    max_iterations: int = Field(0, ge=0)
    objective_tolerance: float = Field(1e-2, gt=0.0)
    newton_tolerance: float = Field(1e-6, gt=0.0)
    max_newton_iterations: PositiveInt = 100
    max_line_search_steps: PositiveInt = 200
    on_regression_failure: Literal["raise", "zero"] = "raise"
    n_jobs: int = 1
    seed: Optional[int] = None

    @field_validator("n_jobs")
    @classmethod
    def _n_jobs_nonzero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("n_jobs must be nonzero (joblib semantics)")
        return value

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SparseCodingConfig":
        try:
            return cls(**dict(values))
        except ValidationError as exc:
            raise InvalidConfigurationError(f"invalid configuration: {exc}") from exc

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SparseCodingConfig":
        return cls.from_mapping(load_yaml(path))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Raw (unvalidated) mapping from a YAML file."""
    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise InvalidConfigurationError(f"{path}: expected a mapping at the top level")
    return raw


def make_config(config: Optional[Union[SparseCodingConfig, Mapping[str, Any]]] = None,
                **overrides: Any) -> SparseCodingConfig:
    """Build a validated config from a config object, a mapping and/or keywords."""
    if isinstance(config, SparseCodingConfig):
        values = config.model_dump()
    else:
        values = dict(config or {})
    values.update(overrides)
    return SparseCodingConfig.from_mapping(values)


SCHEMA_VERSION = 1

def make_metadata(cfg: SparseCodingConfig, result, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    meta = {
        "schema_version": SCHEMA_VERSION,
        "atoms": cfg.atoms,
        "lambda1": cfg.lambda1,
        "lambda2": cfg.lambda2,
        "max_iterations": cfg.max_iterations,
        "objective_tolerance": cfg.objective_tolerance,
        "seed": cfg.seed,
        "status": result.status.value,
        "iterations": result.iterations,
        "initial_objective": result.initial_objective,
        "final_objective": result.final_objective,
        "nonzero_fraction": result.nonzero_fraction,
        "shapes": {"D": list(result.dictionary.shape), "Z": list(result.codes.shape)},
    }
    if result.error is not None:
        meta["error"] = str(result.error)
    if extra: meta.update(extra)
    return meta
