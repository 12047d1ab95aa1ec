from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from tensorboardX import SummaryWriter

from circlevo.evolution.engine.models import GenerationRecord
from circlevo.utils.trackers.base import SnapshotSink


class TensorBoardSink(SnapshotSink):
    """Logs fitness as a scalar and the snapshot as an HWC image per record."""

    def __init__(
        self,
        logdir: str | Path,
        *,
        tag: str = "evolution",
        summary_writer_kwargs: dict[str, Any] | None = None,
    ):
        self.logdir = Path(logdir).resolve()
        self.tag = tag
        self.logdir.mkdir(parents=True, exist_ok=True)
        self._writer: Optional[SummaryWriter] = SummaryWriter(
            str(self.logdir), **(summary_writer_kwargs or {})
        )

    def emit(self, record: GenerationRecord) -> None:
        assert self._writer is not None
        wall_time = record.created_at.timestamp()
        self._writer.add_scalar(
            f"{self.tag}/fitness",
            record.fitness,
            global_step=record.generation,
            walltime=wall_time,
        )
        self._writer.add_image(
            f"{self.tag}/candidate",
            record.snapshot.pixels,
            global_step=record.generation,
            walltime=wall_time,
            dataformats="HWC",
        )

    def close(self) -> None:
        if self._writer is None:
            return
        try:
            self._writer.flush()
        finally:
            self._writer.close()
            self._writer = None
