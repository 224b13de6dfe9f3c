"""DeleteBranch node - remove the finished branch and clear the record."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from flowline.core.errors import (
    BranchNotFoundError,
    RemoteError,
    UnmergedChangesError,
)
from flowline.core.log import logger
from flowline.workflow.context import FinishOutcome, FinishRun, FlowDeps


@dataclass
class DeleteBranch(BaseNode[FinishRun, FlowDeps, FinishOutcome]):
    """Delete the topic branch locally and, if requested, remotely.

    The integration is already durable at this point, so deletion
    problems are reported as warnings and the finish still succeeds.
    """

    async def run(
        self, ctx: GraphRunContext[FinishRun, FlowDeps]
    ) -> End[FinishOutcome]:
        record = ctx.state.require_record()
        deps = ctx.deps
        branch = record.full_branch_name

        deps.driver.checkout(record.parent_branch)

        if record.keep_local:
            logger.info("Keeping local branch", branch=branch)
        else:
            self._delete_local(ctx, branch, record.force_delete)

        if record.delete_remote:
            self._delete_remote(ctx, record.remote, branch)

        deps.store.clear()

        logger.info(
            "Finished branch",
            branch=branch,
            parent=record.parent_branch,
            updated=record.updated_branches,
        )
        return End(FinishOutcome(
            branch=branch,
            parent=record.parent_branch,
            tag=record.tag_name,
            updated_children=list(record.updated_branches),
            deleted_local=ctx.state.deleted_local,
            deleted_remote=ctx.state.deleted_remote,
            warnings=list(ctx.state.warnings),
        ))

    def _delete_local(
        self,
        ctx: GraphRunContext[FinishRun, FlowDeps],
        branch: str,
        force: bool,
    ) -> None:
        try:
            ctx.deps.driver.delete_branch(branch, force=force)
        except UnmergedChangesError as e:
            self._warn(ctx, f"{e}; branch kept")
            return
        except BranchNotFoundError:
            logger.debug("Branch already deleted", branch=branch)
            return
        ctx.state.deleted_local = True
        logger.info("Deleted local branch", branch=branch, force=force)

    def _delete_remote(
        self,
        ctx: GraphRunContext[FinishRun, FlowDeps],
        remote: str,
        branch: str,
    ) -> None:
        driver = ctx.deps.driver
        if not driver.remote_branch_exists(remote, branch):
            logger.debug(
                "No remote branch to delete", remote=remote, branch=branch
            )
            return
        try:
            driver.delete_remote_branch(remote, branch)
        except RemoteError as e:
            self._warn(ctx, str(e))
            return
        ctx.state.deleted_remote = True
        logger.info("Deleted remote branch", remote=remote, branch=branch)

    @staticmethod
    def _warn(ctx: GraphRunContext[FinishRun, FlowDeps], message: str) -> None:
        ctx.state.warnings.append(message)
        logger.warn(message)
