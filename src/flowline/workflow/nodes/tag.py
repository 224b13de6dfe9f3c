"""CreateTag node - tag the parent after integration."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from flowline.core.log import logger
from flowline.model.tagging import DEFAULT_TAG_MESSAGE
from flowline.state.record import Step
from flowline.workflow.context import FinishOutcome, FinishRun, FlowDeps


@dataclass
class CreateTag(BaseNode[FinishRun, FlowDeps, FinishOutcome]):
    """Create the decided annotated tag on the parent's new tip."""

    async def run(
        self, ctx: GraphRunContext[FinishRun, FlowDeps]
    ) -> "UpdateChildren":
        record = ctx.state.require_record()
        driver = ctx.deps.driver

        if record.tag_name:
            if driver.tag_exists(record.tag_name):
                logger.info(
                    "Tag already exists, leaving it alone",
                    tag=record.tag_name,
                )
            else:
                driver.checkout(record.parent_branch)
                message = record.tag_message or DEFAULT_TAG_MESSAGE.format(
                    tag=record.tag_name
                )
                driver.tag(record.tag_name, message)
                logger.info(
                    "Created tag",
                    tag=record.tag_name,
                    branch=record.parent_branch,
                )

        record.advance_to(Step.UPDATE_CHILDREN)
        ctx.deps.store.save(record)

        from flowline.workflow.nodes.update_children import UpdateChildren
        return UpdateChildren()
