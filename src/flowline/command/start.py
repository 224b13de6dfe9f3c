"""Start command - create a topic branch."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from flowline.command.base import build_orchestrator, report_error
from flowline.core.errors import FlowError

if TYPE_CHECKING:
    from flowline.core.config import State


class StartCommand(BaseModel):
    """Create a topic branch from its type's start point and check it out."""

    model_config = ConfigDict(populate_by_name=True)

    branch_type: str = Field(
        alias="type",
        description="Branch type (feature, release, hotfix...)",
    )
    name: str = Field(description="Short name of the new branch")
    fetch: bool = Field(
        default=False, description="Fetch from the remote first"
    )

    async def run_workflow(self, state: State) -> int:
        try:
            orchestrator = build_orchestrator(state)
            identity = await orchestrator.start(
                self.branch_type, self.name, fetch=self.fetch
            )
        except FlowError as e:
            return report_error(e)

        print(f"Switched to a new branch '{identity.full_name}'")
        return 0
