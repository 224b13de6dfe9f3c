"""Finish/update orchestration built on pydantic-graph."""

from flowline.workflow.context import (
    FinishOutcome,
    FinishRequest,
    FlowDeps,
    UpdateOutcome,
)
from flowline.workflow.orchestrator import FlowOrchestrator

__all__ = [
    "FinishOutcome",
    "FinishRequest",
    "FlowDeps",
    "FlowOrchestrator",
    "UpdateOutcome",
]
