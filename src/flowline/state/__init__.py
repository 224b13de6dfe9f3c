"""Persisted operation state."""

from flowline.state.record import OperationRecord, Step
from flowline.state.store import (
    FileOperationStore,
    MemoryOperationStore,
    OperationStore,
)

__all__ = [
    "FileOperationStore",
    "MemoryOperationStore",
    "OperationRecord",
    "OperationStore",
    "Step",
]
