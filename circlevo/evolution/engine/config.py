from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from circlevo.evolution.fitness import FitnessMetric
from circlevo.exceptions import InvalidConfigError


class EngineConfig(BaseModel):
    """Configuration options controlling EvolutionEngine behaviour."""

    population_size: int = Field(
        default=10, gt=0, description="Mutation trials per generation (lambda)"
    )
    metric: FitnessMetric = Field(
        default=FitnessMetric.PERCEPTUAL, description="Fitness metric selector"
    )
    snapshot_frequency: int = Field(
        default=100, gt=0, description="Generations between emitted snapshots"
    )
    loop_interval: float = Field(
        default=0.01, ge=0, description="Seconds slept at each yield point"
    )
    max_generations: int | None = Field(
        default=None,
        gt=0,
        description="Maximum number of generations to run (None = unlimited)",
    )
    max_consecutive_errors: int = Field(default=5, gt=0)
    log_interval: int = Field(default=100, gt=0)
    seed: int | None = Field(
        default=None, description="Seed for the run's generator (None = entropy)"
    )
    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def create(cls, **options: Any) -> EngineConfig:
        """Build a config, reporting any invalid option as InvalidConfigError."""
        try:
            return cls(**options)
        except PydanticValidationError as exc:
            raise InvalidConfigError(str(exc)) from exc
