"""UpdateBranch node - bring a branch up to date with its parent."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from flowline.core.errors import BranchNotFoundError, ConflictingOperationError
from flowline.core.log import logger
from flowline.model.branch import MergeStrategy
from flowline.workflow.context import FlowDeps, UpdateOutcome, UpdateRun
from flowline.workflow.integration import receive_from


@dataclass
class UpdateBranch(BaseNode[UpdateRun, FlowDeps, UpdateOutcome]):
    """Integrate the configured parent into one branch.

    Updates are not resumable: a conflict leaves the working tree
    conflicted for plain git to finish, and nothing is persisted.
    """

    async def run(
        self, ctx: GraphRunContext[UpdateRun, FlowDeps]
    ) -> End[UpdateOutcome]:
        deps = ctx.deps
        identity = ctx.state.identity

        existing = deps.store.load()
        if existing is not None:
            raise ConflictingOperationError(existing.full_branch_name)

        branch = identity.full_name
        parent = deps.hierarchy.parent_of(branch)
        strategy = self._strategy(ctx)

        for name in (branch, parent):
            if not deps.driver.branch_exists(name):
                raise BranchNotFoundError(name)

        receive_from(deps.driver, strategy, branch, parent)

        logger.info(
            "Updated branch",
            branch=branch,
            parent=parent,
            strategy=str(strategy),
        )
        return End(UpdateOutcome(
            branch=branch, parent=parent, strategy=strategy
        ))

    def _strategy(
        self, ctx: GraphRunContext[UpdateRun, FlowDeps]
    ) -> MergeStrategy:
        if ctx.state.force_rebase:
            return MergeStrategy.REBASE

        identity = ctx.state.identity
        hierarchy = ctx.deps.hierarchy
        if identity.is_base:
            strategy = hierarchy.base_branch(identity.full_name).downstream_strategy
        else:
            strategy = hierarchy.topic_type(identity.branch_type).upstream_strategy

        if strategy == MergeStrategy.NONE:
            return MergeStrategy.MERGE
        return strategy
