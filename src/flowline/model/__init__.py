"""Branch hierarchy model, name resolution and tag policy."""

from flowline.model.branch import (
    BaseBranch,
    BranchConfig,
    BranchIdentity,
    BranchKind,
    BranchType,
    FinishDefaults,
    MergeStrategy,
)
from flowline.model.hierarchy import BranchHierarchy
from flowline.model.resolver import BranchNameResolver
from flowline.model.tagging import TagDecision, TagOptions, decide_tag

__all__ = [
    "BaseBranch",
    "BranchConfig",
    "BranchHierarchy",
    "BranchIdentity",
    "BranchKind",
    "BranchNameResolver",
    "BranchType",
    "FinishDefaults",
    "MergeStrategy",
    "TagDecision",
    "TagOptions",
    "decide_tag",
]
