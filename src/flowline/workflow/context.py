"""Graph state, dependencies and results for the finish/update workflows."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from flowline.core.base import BaseState
from flowline.git.base import VcsDriver
from flowline.model.branch import BranchIdentity, MergeStrategy
from flowline.model.hierarchy import BranchHierarchy
from flowline.model.tagging import TagOptions
from flowline.state.record import OperationRecord, Step
from flowline.state.store import OperationStore


@dataclass
class FlowDeps:
    """Collaborators shared by every node of a run."""

    driver: VcsDriver
    store: OperationStore
    hierarchy: BranchHierarchy
    remote: str = "origin"


class FinishRequest(BaseModel):
    """What the user asked a finish to do.

    Options left as None fall back to the branch type's configured
    default.
    """

    identity: BranchIdentity
    tag: TagOptions = Field(default_factory=TagOptions)
    fetch: bool | None = None
    keep_local: bool | None = None
    force_delete: bool | None = None
    delete_remote: bool | None = None


class FinishOutcome(BaseModel):
    """Result of a completed finish."""

    model_config = ConfigDict(frozen=True)

    branch: str
    parent: str
    tag: str | None = None
    updated_children: list[str] = Field(default_factory=list)
    deleted_local: bool = False
    deleted_remote: bool = False
    warnings: list[str] = Field(default_factory=list)


class FinishRun(BaseState):
    """Mutable state of one finish (or continued finish) run."""

    request: FinishRequest | None = Field(
        default=None,
        description="Original request; None when continuing",
    )
    record: OperationRecord | None = Field(
        default=None,
        description="Checkpoint persisted at every step boundary",
    )
    resume_step: Step | None = Field(
        default=None,
        description="Step a --continue re-entered at; None for a fresh run",
    )
    deleted_local: bool = False
    deleted_remote: bool = False
    warnings: list[str] = Field(default_factory=list)

    @property
    def resuming(self) -> bool:
        return self.resume_step is not None

    def require_record(self) -> OperationRecord:
        if self.record is None:
            raise RuntimeError("finish run has no operation record")
        return self.record


class UpdateOutcome(BaseModel):
    """Result of a completed update."""

    model_config = ConfigDict(frozen=True)

    branch: str
    parent: str
    strategy: MergeStrategy


class UpdateRun(BaseState):
    """State of one update run."""

    identity: BranchIdentity
    force_rebase: bool = False


class AbortRun(BaseState):
    """State of one --abort run."""

    record: OperationRecord
