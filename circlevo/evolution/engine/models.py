from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from circlevo.raster.buffer import RasterBuffer


class GenerationRecord(BaseModel):
    """Snapshot event handed to sinks every ``snapshot_frequency`` generations."""

    generation: int = Field(ge=0, description="Index of the completed generation")
    fitness: float = Field(ge=0, description="Best fitness so far")
    snapshot: RasterBuffer = Field(description="Read-only copy of the candidate")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("snapshot")
    @classmethod
    def _read_only(cls, value: RasterBuffer) -> RasterBuffer:
        return value if value.is_read_only else value.to_snapshot()
