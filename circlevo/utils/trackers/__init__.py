from circlevo.utils.trackers.backends.png import PNGHistorySink
from circlevo.utils.trackers.backends.tensorboard import TensorBoardSink
from circlevo.utils.trackers.base import SnapshotSink
from circlevo.utils.trackers.core import CallbackSink, LoguruSink, MemorySink

__all__ = [
    "CallbackSink",
    "LoguruSink",
    "MemorySink",
    "PNGHistorySink",
    "SnapshotSink",
    "TensorBoardSink",
]
