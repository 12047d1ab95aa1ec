from __future__ import annotations

from typing import Callable

from loguru import logger

from circlevo.evolution.engine.models import GenerationRecord
from circlevo.utils.trackers.base import SnapshotSink


class CallbackSink(SnapshotSink):
    """Forwards each record to a plain callable."""

    def __init__(self, callback: Callable[[GenerationRecord], None]):
        self.callback = callback

    def emit(self, record: GenerationRecord) -> None:
        self.callback(record)


class LoguruSink(SnapshotSink):
    def __init__(self, level: str = "INFO"):
        self.level = level

    def emit(self, record: GenerationRecord) -> None:
        logger.log(
            self.level,
            "[Snapshot] generation={} fitness={:.4f} size={}x{}",
            record.generation,
            record.fitness,
            record.snapshot.width,
            record.snapshot.height,
        )


class MemorySink(SnapshotSink):
    """Keeps every record in a list, oldest first."""

    def __init__(self, maxlen: int | None = None):
        self.maxlen = maxlen
        self.records: list[GenerationRecord] = []

    def emit(self, record: GenerationRecord) -> None:
        self.records.append(record)
        if self.maxlen is not None and len(self.records) > self.maxlen:
            del self.records[0]

    def reset(self) -> None:
        self.records.clear()

    @property
    def generations(self) -> list[int]:
        return [r.generation for r in self.records]
