"""Update command - bring a branch up to date with its parent."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from flowline.command.base import build_orchestrator, report_error
from flowline.core.errors import (
    FlowError,
    IntegrationConflictError,
    RebaseConflictError,
)

if TYPE_CHECKING:
    from flowline.core.config import State


class UpdateCommand(BaseModel):
    """Integrate the parent branch into a topic or base branch.

    Topic branches use their type's upstream strategy, base branches
    their downstream strategy. Conflicts are left for plain git to
    finish; nothing is recorded for --continue.
    """

    model_config = ConfigDict(populate_by_name=True)

    branch_type: str | None = Field(
        default=None,
        alias="type",
        description="Branch type; inferred from the current branch",
    )
    name: str | None = Field(
        default=None,
        description="Branch to update; defaults to the current branch",
    )
    rebase: bool = Field(
        default=False,
        description="Rebase onto the parent regardless of configuration",
    )

    async def run_workflow(self, state: State) -> int:
        """Run the update workflow.

        Args:
            state: State instance

        Returns:
            Exit code (0=success)
        """
        try:
            orchestrator = build_orchestrator(state)
            identity = orchestrator.resolver.resolve(
                self.branch_type, self.name
            )
            outcome = await orchestrator.update(
                identity, force_rebase=self.rebase
            )
        except IntegrationConflictError as e:
            if isinstance(e, RebaseConflictError):
                hints = [
                    "Resolve the conflicts and run 'git rebase --continue', "
                    "or run 'git rebase --abort'"
                ]
            else:
                hints = [
                    "Resolve the conflicts and commit, "
                    "or run 'git merge --abort'"
                ]
            return report_error(e, hints)
        except FlowError as e:
            return report_error(e)

        print(
            f"Updated '{outcome.branch}' from '{outcome.parent}' "
            f"({outcome.strategy})"
        )
        return 0
