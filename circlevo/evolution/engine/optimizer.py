from __future__ import annotations

import numpy as np
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from circlevo.evolution.fitness import FitnessFunction, FitnessMetric, resolve_metric
from circlevo.evolution.mutation.base import MutationOperator
from circlevo.evolution.mutation.erase_and_draw import EraseAndDrawMutationOperator
from circlevo.exceptions import InvalidConfigError
from circlevo.raster.buffer import RasterBuffer, check_same_shape

__all__ = ["GenerationResult", "run_generation"]


class GenerationResult(BaseModel):
    """Outcome of one (1+lambda) generation."""

    parent: RasterBuffer = Field(description="Surviving parent (updated in place)")
    fitness: float = Field(ge=0, description="Fitness of the surviving parent")
    parent_fitness: float = Field(ge=0, description="Fitness before the generation")
    improved: bool = Field(description="True if a trial strictly beat the parent")
    trials: int = Field(gt=0, description="Number of mutated candidates scored")
    model_config = ConfigDict(arbitrary_types_allowed=True)

    def as_tuple(self) -> tuple[RasterBuffer, float]:
        """``(new_parent, new_fitness)``."""
        return self.parent, self.fitness


def run_generation(
    target: RasterBuffer,
    parent: RasterBuffer,
    population_size: int,
    metric: FitnessMetric | str | FitnessFunction,
    rng: np.random.Generator,
    mutator: MutationOperator | None = None,
) -> GenerationResult:
    """
    Run one generation of the (1+lambda) strategy.

    Every trial mutates an independent clone of the same starting parent, so
    trials never compound. The best trial replaces the parent (copied into
    ``parent`` in place) only when its fitness is strictly lower; ties keep
    the parent.

    Raises:
        ShapeMismatchError: ``target`` and ``parent`` differ in size
        InvalidConfigError: ``population_size`` is not positive, or unknown metric
    """
    check_same_shape(target, parent)
    if population_size <= 0:
        raise InvalidConfigError(
            f"population_size must be positive, got {population_size}"
        )
    score = resolve_metric(metric)
    mutator = mutator or EraseAndDrawMutationOperator()

    parent_fitness = score(target, parent)
    best_trial: RasterBuffer | None = None
    best_fitness = parent_fitness

    for i in range(population_size):
        trial = mutator.mutate(parent.clone(), rng)
        fitness = score(target, trial)
        if fitness < best_fitness:
            best_trial, best_fitness = trial, fitness
            logger.trace("[Optimizer] Trial {} improved to {:.4f}", i, fitness)

    improved = best_trial is not None
    if improved:
        parent.copy_from(best_trial)

    return GenerationResult(
        parent=parent,
        fitness=best_fitness,
        parent_fitness=parent_fitness,
        improved=improved,
        trials=population_size,
    )
