from __future__ import annotations

import csv
from pathlib import Path

from loguru import logger

from circlevo.evolution.engine.models import GenerationRecord
from circlevo.utils.trackers.base import SnapshotSink

HISTORY_FIELDS = ["generation", "fitness", "file", "created_at"]


class PNGHistorySink(SnapshotSink):
    """
    Writes each snapshot as ``gen_<generation>.png`` under ``directory`` and
    appends one row per snapshot to ``history.csv`` (generation, fitness, file).

    ``thumbnail`` optionally bounds the saved image size, keeping aspect ratio.
    """

    def __init__(
        self, directory: str | Path, *, thumbnail: tuple[int, int] | None = None
    ):
        self.directory = Path(directory)
        self.thumbnail = thumbnail
        self.directory.mkdir(parents=True, exist_ok=True)
        self.history_path = self.directory / "history.csv"
        if not self.history_path.exists():
            self._write_header()

    def reset(self) -> None:
        """Remove earlier snapshots and start a fresh ``history.csv``."""
        removed = 0
        for path in self.directory.glob("gen_*.png"):
            path.unlink()
            removed += 1
        self._write_header()
        logger.debug("[PNGHistorySink] Reset | removed={}", removed)

    def _write_header(self) -> None:
        with open(self.history_path, "w", newline="") as f:
            csv.writer(f).writerow(HISTORY_FIELDS)

    def emit(self, record: GenerationRecord) -> None:
        image = record.snapshot.to_image()
        if self.thumbnail is not None:
            image.thumbnail(self.thumbnail)
        filename = f"gen_{record.generation:08d}.png"
        image.save(self.directory / filename)

        with open(self.history_path, "a", newline="") as f:
            csv.writer(f).writerow(
                [
                    record.generation,
                    f"{record.fitness:.6f}",
                    filename,
                    record.created_at.isoformat(),
                ]
            )
        logger.debug("[PNGHistorySink] Saved {}", filename)
