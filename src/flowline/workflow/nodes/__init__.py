"""Workflow nodes for the finish, update and abort graphs."""

from flowline.workflow.nodes.abort import AbortFinish
from flowline.workflow.nodes.delete_branch import DeleteBranch
from flowline.workflow.nodes.integrate import Integrate
from flowline.workflow.nodes.prepare import Prepare
from flowline.workflow.nodes.tag import CreateTag
from flowline.workflow.nodes.update import UpdateBranch
from flowline.workflow.nodes.update_children import UpdateChildren

__all__ = [
    "Prepare",
    "Integrate",
    "CreateTag",
    "UpdateChildren",
    "DeleteBranch",
    "UpdateBranch",
    "AbortFinish",
]
