"""Exception hierarchy and process exit codes.

Every error a command can surface derives from FlowError and carries
the exit code the CLI returns for it, so calling scripts can branch
on the outcome category.
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes, one per error category."""

    SUCCESS = 0
    CONFIG = 1
    INVALID_INPUT = 2
    GIT = 3
    BRANCH_EXISTS = 4
    BRANCH_NOT_FOUND = 5
    OPERATION_STATE = 6
    CONFLICT = 7
    UNMERGED = 8
    PERSISTENCE = 9
    REMOTE = 10


class FlowError(Exception):
    """Base exception for all flowline errors."""

    exit_code: ExitCode = ExitCode.GIT


# ============================================================
# CONFIGURATION
# ============================================================

class ConfigError(FlowError):
    """Branch configuration is missing, inconsistent or cyclic."""

    exit_code = ExitCode.CONFIG


# ============================================================
# NAME RESOLUTION
# ============================================================

class UsageError(FlowError):
    """Command-line options were combined incorrectly."""

    exit_code = ExitCode.INVALID_INPUT


class UnknownBranchTypeError(FlowError):
    """A branch name or type matches no configured branch type."""

    exit_code = ExitCode.INVALID_INPUT

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown branch type for '{name}'")


class InvalidBranchNameError(FlowError):
    """A branch name was empty or otherwise unusable."""

    exit_code = ExitCode.INVALID_INPUT

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"invalid branch name: '{name}'")


class AmbiguousBranchError(FlowError):
    """A short name matches more than one existing branch."""

    exit_code = ExitCode.INVALID_INPUT

    def __init__(self, name: str, candidates: list[str]):
        self.name = name
        self.candidates = sorted(candidates)
        listing = "\n  ".join(self.candidates)
        super().__init__(
            f"ambiguous branch name '{name}' matches multiple "
            f"branches:\n  {listing}"
        )


class BranchNotFoundError(FlowError):
    """A required branch does not exist."""

    exit_code = ExitCode.BRANCH_NOT_FOUND

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"branch '{branch}' does not exist")


class BranchExistsError(FlowError):
    """A branch that is about to be created already exists."""

    exit_code = ExitCode.BRANCH_EXISTS

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"branch '{branch}' already exists")


# ============================================================
# OPERATION STATE
# ============================================================

class ConflictingOperationError(FlowError):
    """Another finish operation is already in progress."""

    exit_code = ExitCode.OPERATION_STATE

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(
            f"a finish is already in progress for branch '{branch}'. "
            f"Use --continue or --abort on it first"
        )


class NoOperationInProgressError(FlowError):
    """--continue or --abort was requested with nothing to resume."""

    exit_code = ExitCode.OPERATION_STATE

    def __init__(self):
        super().__init__(
            "no operation in progress. Nothing to continue or abort"
        )


class UnresolvedConflictsError(FlowError):
    """The working tree still has unresolved or uncommitted conflicts."""

    exit_code = ExitCode.CONFLICT

    def __init__(self, detail: str | None = None):
        super().__init__(
            detail
            or "there are still unresolved conflicts. "
            "Resolve them and try again"
        )


class PersistenceError(FlowError):
    """The operation record could not be written, read or removed."""

    exit_code = ExitCode.PERSISTENCE


# ============================================================
# VCS OUTCOMES
# ============================================================

class IntegrationConflictError(FlowError):
    """Integrating one branch into another stopped on conflicts.

    Attributes:
        source: Branch being integrated
        target: Branch receiving the changes
        paths: Conflicting paths reported by the driver
        resumable: True when an operation record was kept so the
            run can be continued or aborted later
    """

    exit_code = ExitCode.CONFLICT
    verb = "merging"

    def __init__(
        self,
        source: str,
        target: str,
        paths: list[str] | None = None,
        resumable: bool = False,
    ):
        self.source = source
        self.target = target
        self.paths = list(paths or [])
        self.resumable = resumable
        message = f"conflicts while {self.verb} '{source}' into '{target}'"
        if self.paths:
            message += ": " + ", ".join(self.paths)
        super().__init__(message)


class MergeConflictError(IntegrationConflictError):
    """A merge (or squash merge) stopped on conflicts."""


class RebaseConflictError(IntegrationConflictError):
    """A rebase stopped on conflicts."""

    verb = "rebasing"


class UnmergedChangesError(FlowError):
    """A branch cannot be deleted because it is not fully merged."""

    exit_code = ExitCode.UNMERGED

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(
            f"branch '{branch}' is not fully merged; use force delete"
        )


class RemoteError(FlowError):
    """A fetch or push against the remote failed."""

    exit_code = ExitCode.REMOTE


class GitCommandError(FlowError):
    """A git command failed for a reason other than a conflict."""

    exit_code = ExitCode.GIT

    def __init__(self, operation: str, output: str = ""):
        self.operation = operation
        self.output = output.strip()
        message = f"failed to {operation}"
        if self.output:
            message += f": {self.output}"
        super().__init__(message)


__all__ = [
    "AmbiguousBranchError",
    "BranchExistsError",
    "BranchNotFoundError",
    "ConfigError",
    "ConflictingOperationError",
    "ExitCode",
    "FlowError",
    "GitCommandError",
    "IntegrationConflictError",
    "InvalidBranchNameError",
    "MergeConflictError",
    "NoOperationInProgressError",
    "PersistenceError",
    "RebaseConflictError",
    "RemoteError",
    "UnknownBranchTypeError",
    "UnmergedChangesError",
    "UnresolvedConflictsError",
    "UsageError",
]
