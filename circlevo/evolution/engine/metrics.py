from __future__ import annotations

from datetime import datetime
import math

from pydantic import BaseModel, Field


class EngineMetrics(BaseModel):
    """Counters for the current run; reset on every start."""

    total_generations: int = Field(
        default=0, description="Total number of generations run"
    )
    trials_evaluated: int = Field(
        default=0, description="Total number of mutated candidates scored"
    )
    improvements: int = Field(
        default=0, description="Generations that replaced the parent"
    )
    snapshots_emitted: int = Field(default=0, description="Snapshots sent to sinks")
    sink_errors: int = Field(default=0, description="Exceptions raised by sinks")
    errors_encountered: int = Field(
        default=0, description="Total number of errors encountered"
    )
    best_fitness: float = Field(
        default=math.inf, description="Best fitness so far (inf before generation 1)"
    )
    last_generation_time: datetime | None = Field(
        default=None, description="Timestamp of last generation"
    )

    def record_generation(
        self, fitness: float, improved: bool, trials: int, when: datetime
    ) -> None:
        self.total_generations += 1
        self.trials_evaluated += trials
        self.improvements += int(improved)
        self.best_fitness = fitness
        self.last_generation_time = when

    @property
    def improvement_rate(self) -> float:
        return self.improvements / max(1, self.total_generations)

    def to_dict(self) -> dict[str, int | float | str | None]:
        return {
            "total_generations": self.total_generations,
            "trials_evaluated": self.trials_evaluated,
            "improvements": self.improvements,
            "improvement_rate": self.improvement_rate,
            "snapshots_emitted": self.snapshots_emitted,
            "sink_errors": self.sink_errors,
            "errors_encountered": self.errors_encountered,
            "best_fitness": self.best_fitness,
            "last_generation_time": self.last_generation_time,
        }
