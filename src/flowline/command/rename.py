"""Rename command - give a topic branch a new short name."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from flowline.command.base import build_orchestrator, report_error
from flowline.core.errors import FlowError

if TYPE_CHECKING:
    from flowline.core.config import State


class RenameCommand(BaseModel):
    """Rename a topic branch, keeping its type prefix."""

    model_config = ConfigDict(populate_by_name=True)

    branch_type: str | None = Field(
        default=None,
        alias="type",
        description="Branch type; inferred from the current branch",
    )
    new_name: str = Field(
        alias="new-name", description="New short name"
    )
    name: str | None = Field(
        default=None,
        description="Branch to rename; defaults to the current branch",
    )

    async def run_workflow(self, state: State) -> int:
        try:
            orchestrator = build_orchestrator(state)
            identity = orchestrator.resolver.resolve(
                self.branch_type, self.name
            )
            renamed = await orchestrator.rename(identity, self.new_name)
        except FlowError as e:
            return report_error(e)

        print(
            f"Renamed branch '{identity.full_name}' to '{renamed.full_name}'"
        )
        return 0
