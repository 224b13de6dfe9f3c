"""Contract for the version-control operations flowline relies on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field


class IntegrationStatus(StrEnum):
    OK = "ok"
    CONFLICT = "conflict"
    ERROR = "error"


class IntegrationResult(BaseModel):
    """Outcome of a merge, squash merge or rebase."""

    status: IntegrationStatus
    paths: list[str] = Field(
        default_factory=list,
        description="Conflicting paths when status is conflict",
    )
    output: str = Field(default="", description="Raw VCS output")

    @property
    def ok(self) -> bool:
        return self.status == IntegrationStatus.OK

    @property
    def conflicted(self) -> bool:
        return self.status == IntegrationStatus.CONFLICT


class VcsDriver(ABC):
    """Operations on a single working tree.

    Integration methods report conflicts through IntegrationResult
    and leave the tree in the conflicted state; every other failure
    raises a FlowError subclass (GitCommandError, RemoteError,
    UnmergedChangesError, BranchNotFoundError).
    """

    # Branches

    @abstractmethod
    def checkout(self, branch: str) -> None: ...

    @abstractmethod
    def create_branch(self, name: str, start_point: str) -> None: ...

    @abstractmethod
    def rename_branch(self, old: str, new: str) -> None:
        """Rename a local branch; raises BranchNotFoundError."""

    @abstractmethod
    def delete_branch(self, name: str, force: bool = False) -> None:
        """Delete a local branch.

        Raises:
            UnmergedChangesError: Branch is not merged and force is False
        """

    @abstractmethod
    def current_branch(self) -> str | None:
        """Checked-out branch, or None on a detached HEAD."""

    @abstractmethod
    def branch_exists(self, name: str) -> bool: ...

    @abstractmethod
    def list_branches(self) -> list[str]:
        """All local branch names."""

    @abstractmethod
    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True when `ancestor` is reachable from `descendant`."""

    # Integration

    @abstractmethod
    def merge(self, branch: str, no_ff: bool = True) -> IntegrationResult:
        """Merge `branch` into the checked-out branch."""

    @abstractmethod
    def squash_merge(
        self, branch: str, message: str | None = None
    ) -> IntegrationResult:
        """Squash `branch` into the checked-out branch and commit."""

    @abstractmethod
    def rebase(self, onto: str) -> IntegrationResult:
        """Rebase the checked-out branch onto `onto`."""

    @abstractmethod
    def abort_merge(self) -> None: ...

    @abstractmethod
    def abort_rebase(self) -> None: ...

    @abstractmethod
    def has_unresolved_conflicts(self) -> bool: ...

    @abstractmethod
    def merge_in_progress(self) -> bool: ...

    @abstractmethod
    def squash_in_progress(self) -> bool:
        """True while a squash merge waits to be committed."""

    @abstractmethod
    def rebase_in_progress(self) -> bool: ...

    # Tags

    @abstractmethod
    def tag(self, name: str, message: str) -> None:
        """Create an annotated tag on HEAD."""

    @abstractmethod
    def tag_exists(self, name: str) -> bool: ...

    # Remote

    @abstractmethod
    def fetch(self, remote: str) -> None:
        """Raises RemoteError on failure."""

    @abstractmethod
    def remote_branch_exists(self, remote: str, branch: str) -> bool: ...

    @abstractmethod
    def delete_remote_branch(self, remote: str, branch: str) -> None:
        """Raises RemoteError on failure."""

    # Repository

    @abstractmethod
    def git_dir(self) -> Path:
        """Repository metadata directory (where state is stored)."""
