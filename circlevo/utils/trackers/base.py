from abc import ABC, abstractmethod

from circlevo.evolution.engine.models import GenerationRecord


class SnapshotSink(ABC):
    """Receives periodic generation snapshots from the engine."""

    @abstractmethod
    def emit(self, record: GenerationRecord) -> None:
        pass

    def close(self) -> None:
        """Release any resources held by the sink."""

    def reset(self) -> None:
        """Discard output from a previous run; called on every engine start."""
