"""Integrate node - fold the topic branch into its parent."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from flowline.core.errors import (
    IntegrationConflictError,
    UnresolvedConflictsError,
)
from flowline.core.log import logger
from flowline.model.branch import MergeStrategy
from flowline.workflow.context import FinishOutcome, FinishRun, FlowDeps
from flowline.workflow.integration import fold_into_parent


@dataclass
class Integrate(BaseNode[FinishRun, FlowDeps, FinishOutcome]):
    """Merge, rebase or squash the topic branch into its parent."""

    async def run(
        self, ctx: GraphRunContext[FinishRun, FlowDeps]
    ) -> "CreateTag":
        record = ctx.state.require_record()
        driver = ctx.deps.driver
        branch = record.full_branch_name
        parent = record.parent_branch

        if ctx.state.resuming and self._already_integrated(ctx):
            logger.info(
                "Branch already integrated into parent",
                branch=branch,
                parent=parent,
            )
        else:
            try:
                fold_into_parent(
                    driver, record.merge_strategy, branch, parent
                )
            except IntegrationConflictError as e:
                e.resumable = True
                logger.warn(
                    "Conflicts integrating branch",
                    branch=branch,
                    parent=parent,
                    paths=e.paths,
                )
                raise

        from flowline.workflow.nodes.tag import CreateTag
        return CreateTag()

    def _already_integrated(
        self, ctx: GraphRunContext[FinishRun, FlowDeps]
    ) -> bool:
        record = ctx.state.require_record()
        if record.merge_strategy == MergeStrategy.SQUASH:
            # A squash leaves no ancestry; the user's commit is trusted
            if ctx.deps.driver.squash_in_progress():
                raise UnresolvedConflictsError(
                    "the squash merge is not committed yet. Commit the "
                    "resolution and try again"
                )
            return True
        return ctx.deps.driver.is_ancestor(
            record.full_branch_name, record.parent_branch
        )
