"""List command - show the topic branches of one type."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from flowline.command.base import build_orchestrator, report_error
from flowline.core.errors import FlowError

if TYPE_CHECKING:
    from flowline.core.config import State
    from flowline.workflow.orchestrator import FlowOrchestrator


class ListCommand(BaseModel):
    """List local branches of a topic type, marking the current one."""

    model_config = ConfigDict(populate_by_name=True)

    branch_type: str = Field(
        alias="type",
        description="Branch type (feature, release, hotfix...)",
    )

    def render(self, orchestrator: FlowOrchestrator) -> list[str]:
        branches = orchestrator.list_topic_branches(self.branch_type)
        if not branches:
            return [f"No {self.branch_type} branches found"]

        current = orchestrator.driver.current_branch()
        lines = [f"{self.branch_type.capitalize()} branches:"]
        for identity in branches:
            marker = "*" if identity.full_name == current else " "
            lines.append(f"{marker} {identity.short_name}")
        return lines

    async def run_workflow(self, state: State) -> int:
        try:
            orchestrator = build_orchestrator(state)
            lines = self.render(orchestrator)
        except FlowError as e:
            return report_error(e)

        print("\n".join(lines))
        return 0
