"""Graph workflow definitions."""

from pydantic_graph import Graph

from flowline.core.log import logger
from flowline.workflow.context import AbortRun, FinishRun, UpdateRun


def create_finish_workflow():
    """Create the finish workflow graph.

    Prepare → Integrate → CreateTag → UpdateChildren → DeleteBranch

    A --continue run enters at the node matching the record's
    current step instead of Prepare.

    Returns:
        Graph workflow with FinishRun as state_type
    """
    logger.debug("Building finish workflow graph")

    # Import nodes (lazy to avoid circular imports)
    from flowline.workflow.nodes.delete_branch import DeleteBranch
    from flowline.workflow.nodes.integrate import Integrate
    from flowline.workflow.nodes.prepare import Prepare
    from flowline.workflow.nodes.tag import CreateTag
    from flowline.workflow.nodes.update_children import UpdateChildren

    return Graph(
        nodes=(
            Prepare,
            Integrate,
            CreateTag,
            UpdateChildren,
            DeleteBranch,
        ),
        state_type=FinishRun,
    )


def create_update_workflow():
    """Create the single-node update workflow graph."""
    from flowline.workflow.nodes.update import UpdateBranch

    return Graph(nodes=(UpdateBranch,), state_type=UpdateRun)


def create_abort_workflow():
    """Create the single-node abort workflow graph."""
    from flowline.workflow.nodes.abort import AbortFinish

    return Graph(nodes=(AbortFinish,), state_type=AbortRun)
