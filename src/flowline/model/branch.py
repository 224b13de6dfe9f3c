"""Branch hierarchy records: branch types, base branches, identities."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class MergeStrategy(StrEnum):
    """How one branch incorporates another."""

    MERGE = "merge"
    REBASE = "rebase"
    SQUASH = "squash"
    NONE = "none"


class BranchKind(StrEnum):
    """Configured role of a branch entry."""

    BASE = "base"
    TOPIC = "topic"


class BranchType(BaseModel):
    """Configuration for one kind of topic branch (feature, release...).

    The upstream strategy governs both how a topic branch receives
    parent changes on update and how it is folded back into the
    parent at finish time.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    prefix: str = ""
    parent: str
    start_point: str = ""
    upstream_strategy: MergeStrategy = MergeStrategy.MERGE
    downstream_strategy: MergeStrategy = MergeStrategy.MERGE
    tag_enabled: bool = False
    tag_prefix: str = ""
    delete_remote_default: bool = False
    fetch_default: bool = False
    notag_default: bool = False
    message_file: str | None = None
    keep_local_default: bool = False
    force_delete_default: bool = False

    @property
    def start_ref(self) -> str:
        """Branch new topic branches are created from."""
        return self.start_point or self.parent

    def full_name(self, short_name: str) -> str:
        """Prefix a short name with this type's prefix."""
        return self.prefix + short_name

    def short_name(self, full_name: str) -> str:
        """Strip this type's prefix from a full branch name."""
        if self.prefix and full_name.startswith(self.prefix):
            return full_name[len(self.prefix):]
        return full_name


class BaseBranch(BaseModel):
    """A long-lived branch in the base-branch tree.

    The root (e.g. main) has an empty parent.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    parent: str = ""
    upstream_strategy: MergeStrategy = MergeStrategy.NONE
    downstream_strategy: MergeStrategy = MergeStrategy.NONE

    @property
    def is_root(self) -> bool:
        return not self.parent


class BranchIdentity(BaseModel):
    """A resolved branch reference."""

    model_config = ConfigDict(frozen=True)

    short_name: str
    full_name: str
    branch_type: str = Field(
        description="Topic type name, or the base branch name"
    )
    is_base: bool = False


class FinishDefaults(BaseModel):
    """Per-type finish options (gitflow.<type>.finish.*)."""

    notag: bool = False
    fetch: bool = False
    messagefile: str | None = None
    keeplocal: bool = False
    forcedelete: bool = False
    deleteremote: bool | None = None

    model_config = ConfigDict(extra="ignore")


class BranchConfig(BaseModel):
    """One raw `branches` entry as read from configuration.

    Keys mirror the git config properties under
    gitflow.branch.<name>.* and gitflow.<name>.finish.*.
    """

    type: BranchKind = BranchKind.TOPIC
    parent: str = ""
    start_point: str = Field(default="", alias="startpoint")
    upstream_strategy: MergeStrategy = Field(
        default=MergeStrategy.MERGE, alias="upstreamstrategy"
    )
    downstream_strategy: MergeStrategy = Field(
        default=MergeStrategy.MERGE, alias="downstreamstrategy"
    )
    prefix: str = ""
    tag: bool = False
    tag_prefix: str = Field(default="", alias="tagprefix")
    delete_remote: bool = Field(default=False, alias="deleteremote")
    finish: FinishDefaults = Field(default_factory=FinishDefaults)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


__all__ = [
    "BaseBranch",
    "BranchConfig",
    "BranchIdentity",
    "BranchKind",
    "BranchType",
    "FinishDefaults",
    "MergeStrategy",
]
