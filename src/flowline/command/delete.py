"""Delete command - drop a topic branch without finishing it."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from flowline.command.base import build_orchestrator, report_error
from flowline.core.errors import FlowError, UnmergedChangesError

if TYPE_CHECKING:
    from flowline.core.config import State


class DeleteCommand(BaseModel):
    """Delete a topic branch locally and optionally on the remote.

    If the branch is checked out, its parent is checked out first.
    """

    model_config = ConfigDict(populate_by_name=True)

    branch_type: str | None = Field(
        default=None,
        alias="type",
        description="Branch type; inferred from the current branch",
    )
    name: str | None = Field(
        default=None,
        description="Branch to delete; defaults to the current branch",
    )
    force: bool = Field(
        default=False,
        description="Delete even if the branch is not fully merged",
    )
    # None leaves the choice to the type's deleteremote setting
    remote: bool = Field(
        default=None,
        description="Also delete the branch on the remote",
    )

    async def run_workflow(self, state: State) -> int:
        try:
            orchestrator = build_orchestrator(state)
            identity = orchestrator.resolver.resolve(
                self.branch_type, self.name
            )
            deleted_remote = await orchestrator.delete(
                identity, force=self.force, delete_remote=self.remote
            )
        except UnmergedChangesError as e:
            return report_error(e, ["Use --force to delete it anyway"])
        except FlowError as e:
            return report_error(e)

        print(f"Deleted branch {identity.full_name}")
        if deleted_remote:
            print(f"Deleted remote branch {orchestrator.remote}/"
                  f"{identity.full_name}")
        return 0
