"""UpdateChildren node - cascade the parent into its child base branches."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from flowline.core.errors import (
    IntegrationConflictError,
    UnresolvedConflictsError,
)
from flowline.core.log import logger
from flowline.model.branch import MergeStrategy
from flowline.state.record import Step
from flowline.workflow.context import FinishOutcome, FinishRun, FlowDeps
from flowline.workflow.integration import receive_from


@dataclass
class UpdateChildren(BaseNode[FinishRun, FlowDeps, FinishOutcome]):
    """Bring the updated parent into each child base branch in order.

    Progress only moves forward: a conflict on one child stops the
    cascade but keeps the children already updated, and a later
    --continue picks up at the first child not yet done.
    """

    async def run(
        self, ctx: GraphRunContext[FinishRun, FlowDeps]
    ) -> "DeleteBranch":
        record = ctx.state.require_record()
        deps = ctx.deps
        parent = record.parent_branch

        resumed_child = None
        if ctx.state.resume_step == Step.UPDATE_CHILDREN:
            pending = record.pending_children()
            resumed_child = pending[0] if pending else None

        for child in record.pending_children():
            strategy = deps.hierarchy.base_branch(child).downstream_strategy

            if deps.driver.is_ancestor(parent, child):
                logger.info(
                    "Child already contains parent",
                    child=child,
                    parent=parent,
                )
            elif (
                child == resumed_child
                and strategy == MergeStrategy.SQUASH
            ):
                if deps.driver.squash_in_progress():
                    raise UnresolvedConflictsError(
                        f"the squash of '{parent}' into '{child}' is not "
                        "committed yet. Commit the resolution and try again"
                    )
                logger.info(
                    "Trusting resolved squash on child",
                    child=child,
                    parent=parent,
                )
            else:
                try:
                    receive_from(deps.driver, strategy, child, parent)
                except IntegrationConflictError as e:
                    e.resumable = True
                    record.merge_strategy = strategy
                    deps.store.save(record)
                    logger.warn(
                        "Conflicts updating child branch",
                        child=child,
                        parent=parent,
                        paths=e.paths,
                        updated=record.updated_branches,
                    )
                    raise

            record.mark_updated(child)
            deps.store.save(record)

        record.advance_to(Step.DELETE_BRANCH)
        deps.store.save(record)

        from flowline.workflow.nodes.delete_branch import DeleteBranch
        return DeleteBranch()
