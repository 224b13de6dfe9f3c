"""Entry point for the branch workflows."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from flowline.core.errors import (
    BranchExistsError,
    BranchNotFoundError,
    ConflictingOperationError,
    InvalidBranchNameError,
    NoOperationInProgressError,
    UnresolvedConflictsError,
    UsageError,
)
from flowline.core.log import logger
from flowline.model.branch import BranchIdentity, BranchType
from flowline.model.hierarchy import BranchHierarchy
from flowline.model.resolver import BranchNameResolver
from flowline.state.record import OperationRecord, Step
from flowline.state.store import FileOperationStore, OperationStore
from flowline.workflow.context import (
    AbortRun,
    FinishOutcome,
    FinishRequest,
    FinishRun,
    FlowDeps,
    UpdateOutcome,
    UpdateRun,
)
from flowline.workflow.graph import (
    create_abort_workflow,
    create_finish_workflow,
    create_update_workflow,
)

if TYPE_CHECKING:
    from flowline.core.config import Config
    from flowline.git.base import VcsDriver


class FlowOrchestrator:
    """Runs the branch workflows against one repository.

    Only one finish may be in flight at a time; the operation store's
    record is the lock.
    """

    def __init__(
        self,
        hierarchy: BranchHierarchy,
        driver: VcsDriver,
        store: OperationStore,
        remote: str = "origin",
    ):
        self.hierarchy = hierarchy
        self.driver = driver
        self.store = store
        self.remote = remote
        self.resolver = BranchNameResolver(hierarchy, driver)

    @classmethod
    def from_config(
        cls, config: Config, workdir: Path | None = None
    ) -> FlowOrchestrator:
        """Build an orchestrator over the git repository at workdir."""
        from flowline.git.driver import GitDriver

        driver = GitDriver(workdir)
        if config.state_path is not None:
            store = FileOperationStore(config.state_path)
        else:
            store = FileOperationStore.for_git_dir(driver.git_dir())
        return cls(config.hierarchy(), driver, store, config.remote)

    @property
    def deps(self) -> FlowDeps:
        return FlowDeps(
            driver=self.driver,
            store=self.store,
            hierarchy=self.hierarchy,
            remote=self.remote,
        )

    # ------------------------------------------------------------
    # finish
    # ------------------------------------------------------------

    async def finish(self, request: FinishRequest) -> FinishOutcome:
        """Finish a topic branch.

        A finish already recorded for the same branch is resumed as
        with continue_finish instead of being started over.

        Raises:
            ConflictingOperationError: A finish for another branch is
                in progress
            MergeConflictError / RebaseConflictError: Resumable stop
        """
        from flowline.workflow.nodes.prepare import Prepare

        identity = request.identity
        existing = self.store.load()
        if (
            existing is not None
            and existing.full_branch_name == identity.full_name
        ):
            logger.info(
                "Finish already in progress, resuming",
                branch=identity.full_name,
            )
            return await self.continue_finish(
                identity.full_name, identity.branch_type
            )

        state = FinishRun(request=request)
        with logger.span("finish", branch=request.identity.full_name):
            return await self._run_finish(Prepare(), state)

    async def continue_finish(
        self, name: str | None = None, branch_type: str | None = None
    ) -> FinishOutcome:
        """Resume the recorded finish after conflicts were resolved.

        Args:
            name: Branch the user named, if any; must match the record
            branch_type: Type scope for `name`

        Raises:
            NoOperationInProgressError: Nothing to continue
            ConflictingOperationError: The record is for another branch
            UnresolvedConflictsError: Conflicts or an uncommitted
                merge, rebase or squash remain in the working tree
        """
        record = self._require_record(name, branch_type)

        if self.driver.has_unresolved_conflicts():
            raise UnresolvedConflictsError()
        if self.driver.rebase_in_progress():
            raise UnresolvedConflictsError(
                "a rebase is still in progress. Finish it with "
                "'git rebase --continue' and try again"
            )
        if self.driver.merge_in_progress():
            raise UnresolvedConflictsError(
                "the merge is not committed yet. Commit the resolution "
                "and try again"
            )
        if self.driver.squash_in_progress():
            raise UnresolvedConflictsError(
                "the squash merge is not committed yet. Commit the "
                "resolution and try again"
            )

        logger.info(
            "Continuing finish",
            branch=record.full_branch_name,
            step=str(record.current_step),
        )
        state = FinishRun(
            record=record, resume_step=record.current_step
        )
        with logger.span("continue", branch=record.full_branch_name):
            return await self._run_finish(
                self._node_for_step(record.current_step), state
            )

    async def abort_finish(
        self, name: str | None = None, branch_type: str | None = None
    ) -> str:
        """Abort the recorded finish and clear its record.

        Returns:
            Full name of the branch whose finish was aborted

        Raises:
            NoOperationInProgressError: Nothing to abort
            ConflictingOperationError: The record is for another branch
        """
        from flowline.workflow.nodes.abort import AbortFinish

        record = self._require_record(name, branch_type)
        workflow = create_abort_workflow()
        async with workflow.iter(
            AbortFinish(), state=AbortRun(record=record), deps=self.deps
        ) as run:
            async for node in run:
                logger.debug("Workflow step", node=type(node).__name__)
        return run.result.output

    async def _run_finish(self, start, state: FinishRun) -> FinishOutcome:
        workflow = create_finish_workflow()
        async with workflow.iter(start, state=state, deps=self.deps) as run:
            async for node in run:
                logger.debug("Workflow step", node=type(node).__name__)
        return run.result.output

    @staticmethod
    def _node_for_step(step: Step):
        from flowline.workflow.nodes.delete_branch import DeleteBranch
        from flowline.workflow.nodes.integrate import Integrate
        from flowline.workflow.nodes.update_children import UpdateChildren

        return {
            Step.MERGE: Integrate,
            Step.UPDATE_CHILDREN: UpdateChildren,
            Step.DELETE_BRANCH: DeleteBranch,
        }[step]()

    def _require_record(
        self, name: str | None, branch_type: str | None
    ) -> OperationRecord:
        record = self.store.load()
        if record is None:
            raise NoOperationInProgressError()
        if branch_type is not None and branch_type != record.branch_type:
            raise ConflictingOperationError(record.full_branch_name)
        # The branch may already be deleted, so names are compared
        # against the record rather than resolved against the repository
        if name is not None and not self._names_record(name.strip(), record):
            raise ConflictingOperationError(record.full_branch_name)
        return record

    def _names_record(self, name: str, record: OperationRecord) -> bool:
        if name == record.full_branch_name:
            return True
        types = {t.name: t for t in self.hierarchy.branch_types}
        branch_type = types.get(record.branch_type)
        short = branch_type.short_name(name) if branch_type else name
        # Prefixes of the short name are accepted, as in branch resolution
        return bool(short) and record.branch_name.startswith(short)

    # ------------------------------------------------------------
    # update
    # ------------------------------------------------------------

    async def update(
        self, identity: BranchIdentity, force_rebase: bool = False
    ) -> UpdateOutcome:
        """Bring a branch up to date with its parent.

        Raises:
            ConflictingOperationError: A finish is in progress
            MergeConflictError / RebaseConflictError: Not resumable
        """
        from flowline.workflow.nodes.update import UpdateBranch

        workflow = create_update_workflow()
        state = UpdateRun(identity=identity, force_rebase=force_rebase)
        with logger.span("update", branch=identity.full_name):
            async with workflow.iter(
                UpdateBranch(), state=state, deps=self.deps
            ) as run:
                async for node in run:
                    logger.debug("Workflow step", node=type(node).__name__)
        return run.result.output

    # ------------------------------------------------------------
    # start
    # ------------------------------------------------------------

    async def start(
        self, branch_type: str, name: str, fetch: bool = False
    ) -> BranchIdentity:
        """Create a topic branch from its type's start point.

        Raises:
            BranchExistsError: The branch already exists
            BranchNotFoundError: The start point does not exist
            RemoteError: Fetch failed
        """
        topic = self.hierarchy.topic_type(branch_type)
        short = topic.short_name(name.strip())
        if not short:
            raise InvalidBranchNameError(name)
        full = topic.full_name(short)

        if self.driver.branch_exists(full):
            raise BranchExistsError(full)
        if not self.driver.branch_exists(topic.start_ref):
            raise BranchNotFoundError(topic.start_ref)
        if fetch or topic.fetch_default:
            self.driver.fetch(self.remote)

        self.driver.create_branch(full, topic.start_ref)
        logger.info("Started branch", branch=full, start_point=topic.start_ref)
        return BranchIdentity(
            short_name=short, full_name=full, branch_type=topic.name
        )

    # ------------------------------------------------------------
    # list, delete, rename
    # ------------------------------------------------------------

    def list_topic_branches(self, branch_type: str) -> list[BranchIdentity]:
        """Local branches carrying the type's prefix, sorted by name."""
        topic = self.hierarchy.topic_type(branch_type)
        return [
            BranchIdentity(
                short_name=topic.short_name(branch),
                full_name=branch,
                branch_type=topic.name,
            )
            for branch in sorted(self.driver.list_branches())
            if branch.startswith(topic.prefix)
            and branch != topic.prefix
            and not self.hierarchy.is_base(branch)
        ]

    async def delete(
        self,
        identity: BranchIdentity,
        force: bool = False,
        delete_remote: bool | None = None,
    ) -> bool:
        """Delete a topic branch without integrating it.

        Args:
            identity: Resolved topic branch
            force: Delete even when not merged into the current branch
            delete_remote: Also delete the remote branch; None uses the
                type's default

        Returns:
            True when the remote branch was deleted too

        Raises:
            UsageError: The branch is a base branch
            ConflictingOperationError: The branch is being finished
            UnmergedChangesError: Unmerged and force is False
            RemoteError: Deleting the remote branch failed
        """
        topic = self._topic_for(identity, "delete")
        self._refuse_if_finishing(identity)
        branch = identity.full_name

        if self.driver.current_branch() == branch:
            self.driver.checkout(topic.parent)
        self.driver.delete_branch(branch, force=force)
        logger.info("Deleted local branch", branch=branch, force=force)

        if delete_remote is None:
            delete_remote = topic.delete_remote_default
        if delete_remote and self.driver.remote_branch_exists(
            self.remote, branch
        ):
            self.driver.delete_remote_branch(self.remote, branch)
            logger.info(
                "Deleted remote branch", remote=self.remote, branch=branch
            )
            return True
        return False

    async def rename(
        self, identity: BranchIdentity, new_name: str
    ) -> BranchIdentity:
        """Rename a topic branch within its type.

        Raises:
            UsageError: The branch is a base branch
            InvalidBranchNameError: The new name is blank
            BranchExistsError: The new branch already exists
            ConflictingOperationError: The branch is being finished
        """
        topic = self._topic_for(identity, "rename")
        short = topic.short_name(new_name.strip())
        if not short:
            raise InvalidBranchNameError(new_name)
        full = topic.full_name(short)

        if self.driver.branch_exists(full):
            raise BranchExistsError(full)
        self._refuse_if_finishing(identity)

        self.driver.rename_branch(identity.full_name, full)
        logger.info("Renamed branch", old=identity.full_name, new=full)
        return BranchIdentity(
            short_name=short, full_name=full, branch_type=topic.name
        )

    def _topic_for(
        self, identity: BranchIdentity, action: str
    ) -> BranchType:
        if identity.is_base:
            raise UsageError(
                f"cannot {action} base branch '{identity.full_name}'"
            )
        return self.hierarchy.topic_type(identity.branch_type)

    def _refuse_if_finishing(self, identity: BranchIdentity) -> None:
        record = self.store.load()
        if record is not None and record.full_branch_name == identity.full_name:
            raise ConflictingOperationError(record.full_branch_name)
