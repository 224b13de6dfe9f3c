"""Checkout command - switch to a topic branch by (partial) name."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from flowline.command.base import build_orchestrator, report_error
from flowline.core.errors import FlowError

if TYPE_CHECKING:
    from flowline.core.config import State


class CheckoutCommand(BaseModel):
    """Check out a branch by full name, short name or unique prefix."""

    model_config = ConfigDict(populate_by_name=True)

    branch_type: str | None = Field(
        default=None,
        alias="type",
        description="Branch type; inferred from the current branch",
    )
    name: str = Field(description="Branch name, short name or prefix")

    async def run_workflow(self, state: State) -> int:
        try:
            orchestrator = build_orchestrator(state)
            identity = orchestrator.resolver.resolve(
                self.branch_type, self.name
            )
            orchestrator.driver.checkout(identity.full_name)
        except FlowError as e:
            return report_error(e)

        print(f"Switched to branch '{identity.full_name}'")
        return 0
