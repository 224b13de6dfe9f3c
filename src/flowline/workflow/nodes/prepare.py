"""Prepare node - validate a finish request and checkpoint it."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from flowline.core.errors import (
    BranchNotFoundError,
    ConfigError,
    ConflictingOperationError,
)
from flowline.core.log import logger
from flowline.model.branch import MergeStrategy
from flowline.model.tagging import decide_tag
from flowline.state.record import OperationRecord, Step
from flowline.workflow.context import FinishOutcome, FinishRun, FlowDeps


@dataclass
class Prepare(BaseNode[FinishRun, FlowDeps, FinishOutcome]):
    """Check preconditions and write the first checkpoint.

    Nothing in the working tree changes before the record is saved,
    so any failure here leaves the repository untouched.
    """

    async def run(
        self, ctx: GraphRunContext[FinishRun, FlowDeps]
    ) -> "Integrate":
        deps = ctx.deps
        request = ctx.state.request
        if request is None:
            raise RuntimeError("Prepare requires a finish request")

        existing = deps.store.load()
        if existing is not None:
            raise ConflictingOperationError(existing.full_branch_name)

        deps.hierarchy.validate()
        identity = request.identity
        if identity.is_base:
            raise ConfigError(
                f"'{identity.full_name}' is a base branch and cannot "
                f"be finished"
            )
        branch_type = deps.hierarchy.topic_type(identity.branch_type)
        if branch_type.upstream_strategy == MergeStrategy.NONE:
            raise ConfigError(
                f"branches of type '{branch_type.name}' are not "
                f"integrated into a parent and cannot be finished"
            )
        parent = branch_type.parent

        for branch in (identity.full_name, parent):
            if not deps.driver.branch_exists(branch):
                raise BranchNotFoundError(branch)

        fetch = (
            request.fetch
            if request.fetch is not None
            else branch_type.fetch_default
        )
        if fetch:
            logger.info("Fetching from remote", remote=deps.remote)
            deps.driver.fetch(deps.remote)

        decision = decide_tag(branch_type, identity.short_name, request.tag)
        if decision.create and deps.driver.tag_exists(decision.name):
            logger.warn("Tag already exists", tag=decision.name)

        children = [
            child.name for child in deps.hierarchy.cascade_targets(parent)
        ]

        record = OperationRecord(
            branch_type=branch_type.name,
            branch_name=identity.short_name,
            full_branch_name=identity.full_name,
            parent_branch=parent,
            merge_strategy=branch_type.upstream_strategy,
            current_step=Step.MERGE,
            child_branches=children,
            tag_name=decision.name if decision.create else None,
            tag_message=decision.message,
            keep_local=_pick(request.keep_local, branch_type.keep_local_default),
            force_delete=_pick(
                request.force_delete, branch_type.force_delete_default
            ),
            delete_remote=_pick(
                request.delete_remote, branch_type.delete_remote_default
            ),
            remote=deps.remote,
        )
        deps.store.save(record)
        ctx.state.record = record

        logger.info(
            "Finishing branch",
            branch=identity.full_name,
            parent=parent,
            strategy=str(record.merge_strategy),
            tag=record.tag_name,
            children=children,
        )

        from flowline.workflow.nodes.integrate import Integrate
        return Integrate()


def _pick(requested: bool | None, default: bool) -> bool:
    return default if requested is None else requested
