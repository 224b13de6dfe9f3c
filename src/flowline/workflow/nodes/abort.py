"""AbortFinish node - roll back an interrupted finish."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from flowline.core.log import logger
from flowline.model.branch import MergeStrategy
from flowline.workflow.context import AbortRun, FlowDeps


@dataclass
class AbortFinish(BaseNode[AbortRun, FlowDeps, str]):
    """Abort the pending merge or rebase and forget the operation.

    The record is removed even when the VCS abort fails, so the
    repository is never left locked by a finish nobody can resume.
    """

    async def run(
        self, ctx: GraphRunContext[AbortRun, FlowDeps]
    ) -> End[str]:
        record = ctx.state.record
        driver = ctx.deps.driver
        branch = record.full_branch_name

        try:
            if (
                record.merge_strategy == MergeStrategy.REBASE
                and driver.rebase_in_progress()
            ):
                logger.info("Aborting rebase", branch=branch)
                driver.abort_rebase()
            elif (
                driver.merge_in_progress()
                or driver.squash_in_progress()
                or driver.has_unresolved_conflicts()
            ):
                logger.info("Aborting merge", branch=branch)
                driver.abort_merge()
            elif driver.rebase_in_progress():
                logger.info("Aborting rebase", branch=branch)
                driver.abort_rebase()

            if driver.branch_exists(branch):
                driver.checkout(branch)
        finally:
            ctx.deps.store.clear()

        logger.info(
            "Aborted finish",
            branch=branch,
            step=str(record.current_step),
        )
        return End(branch)
