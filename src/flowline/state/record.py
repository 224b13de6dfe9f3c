"""The persisted record of an in-flight finish operation."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flowline.model.branch import MergeStrategy


class Step(StrEnum):
    """Finish steps, in the only order they may be visited."""

    MERGE = "merge"
    UPDATE_CHILDREN = "update_children"
    DELETE_BRANCH = "delete_branch"

    @property
    def position(self) -> int:
        return list(Step).index(self)


class OperationRecord(BaseModel):
    """Checkpoint of a finish operation.

    Serialized with camelCase keys. `childBranches` is the full
    cascade set in order; `updatedBranches` the children already
    done. Fields after `updatedBranches` capture the decisions made
    when the finish started so a later --continue replays them.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    action: str = "finish"
    branch_type: str = Field(alias="branchType")
    branch_name: str = Field(alias="branchName")
    full_branch_name: str = Field(alias="fullBranchName")
    parent_branch: str = Field(alias="parentBranch")
    merge_strategy: MergeStrategy = Field(alias="mergeStrategy")
    current_step: Step = Field(default=Step.MERGE, alias="currentStep")
    child_branches: list[str] = Field(
        default_factory=list, alias="childBranches"
    )
    updated_branches: list[str] = Field(
        default_factory=list, alias="updatedBranches"
    )

    tag_name: str | None = Field(default=None, alias="tagName")
    tag_message: str | None = Field(default=None, alias="tagMessage")
    keep_local: bool = Field(default=False, alias="keepLocal")
    force_delete: bool = Field(default=False, alias="forceDelete")
    delete_remote: bool = Field(default=False, alias="deleteRemote")
    remote: str = "origin"

    @model_validator(mode="after")
    def _updated_subset_of_children(self) -> OperationRecord:
        stray = [b for b in self.updated_branches if b not in self.child_branches]
        if stray:
            raise ValueError(
                f"updatedBranches not in childBranches: {', '.join(stray)}"
            )
        return self

    def advance_to(self, step: Step) -> None:
        """Move to `step`; moving backwards is an error."""
        if step.position < self.current_step.position:
            raise ValueError(
                f"cannot move operation back from "
                f"{self.current_step} to {step}"
            )
        self.current_step = step

    def mark_updated(self, child: str) -> None:
        """Record that `child` received the cascade."""
        if child not in self.child_branches:
            raise ValueError(f"'{child}' is not a cascade target")
        if child not in self.updated_branches:
            self.updated_branches = [*self.updated_branches, child]

    def pending_children(self) -> list[str]:
        """Children still waiting for the cascade, in order."""
        return [
            child
            for child in self.child_branches
            if child not in self.updated_branches
        ]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, data: str | bytes) -> OperationRecord:
        return cls.model_validate_json(data)
