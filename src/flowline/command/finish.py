"""Finish command - integrate a topic branch and cascade its parent."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from flowline.command.base import build_orchestrator, report_error
from flowline.core.errors import (
    FlowError,
    IntegrationConflictError,
    UsageError,
)
from flowline.model.tagging import TagOptions
from flowline.workflow.context import FinishOutcome, FinishRequest

if TYPE_CHECKING:
    from flowline.core.config import State


class FinishCommand(BaseModel):
    """Finish a topic branch.

    Integrates the branch into its parent using the type's upstream
    strategy, optionally tags the result, updates the parent's child
    base branches and deletes the topic branch. When conflicts stop
    the run, resolve them and rerun with --continue, or give up with
    --abort.
    """

    model_config = ConfigDict(populate_by_name=True)

    branch_type: str | None = Field(
        default=None,
        alias="type",
        description=(
            "Branch type (feature, release, hotfix...). Inferred from "
            "the current branch when omitted"
        ),
    )
    name: str | None = Field(
        default=None,
        description=(
            "Branch name, short name or unique prefix. Defaults to the "
            "current branch"
        ),
    )
    continue_: bool = Field(
        default=False,
        alias="continue",
        description="Resume an interrupted finish after resolving conflicts",
    )
    abort: bool = Field(
        default=False,
        description="Abort an interrupted finish and forget it",
    )
    tag: bool = Field(default=False, description="Create a tag")
    notag: bool = Field(default=False, description="Do not create a tag")
    tagname: str | None = Field(
        default=None, description="Tag name (default: prefix + name)"
    )
    message: str | None = Field(default=None, description="Tag message")
    messagefile: str | None = Field(
        default=None, description="File containing the tag message"
    )
    keeplocal: bool = Field(
        default=False, description="Keep the local branch after finishing"
    )
    force_delete: bool = Field(
        default=False,
        alias="force-delete",
        description="Delete the local branch even if not fully merged",
    )
    fetch: bool = Field(
        default=False, description="Fetch from the remote first"
    )
    delete_remote: bool = Field(
        default=False,
        alias="delete-remote",
        description="Also delete the branch on the remote",
    )
    keepremote: bool = Field(
        default=False, description="Never delete the remote branch"
    )

    async def run_workflow(self, state: State) -> int:
        """Run the finish workflow.

        Args:
            state: State instance

        Returns:
            Exit code (0=success)
        """
        orchestrator = None
        try:
            if self.continue_ and self.abort:
                raise UsageError("--continue and --abort are exclusive")
            if self.delete_remote and self.keepremote:
                raise UsageError(
                    "--delete-remote and --keepremote are exclusive"
                )

            orchestrator = build_orchestrator(state)

            if self.abort:
                branch = await orchestrator.abort_finish(
                    self.name, self.branch_type
                )
                print(f"Aborted finish of '{branch}'")
                return 0

            if self.continue_:
                outcome = await orchestrator.continue_finish(
                    self.name, self.branch_type
                )
            else:
                identity = orchestrator.resolver.resolve(
                    self.branch_type, self.name
                )
                outcome = await orchestrator.finish(self.to_request(identity))
        except IntegrationConflictError as e:
            return report_error(e, self._resume_hints(orchestrator, e))
        except FlowError as e:
            return report_error(e)

        self._print_outcome(outcome)
        return 0

    def to_request(self, identity) -> FinishRequest:
        delete_remote = None
        if self.delete_remote:
            delete_remote = True
        elif self.keepremote:
            delete_remote = False

        return FinishRequest(
            identity=identity,
            tag=TagOptions(
                tag=self.tag,
                notag=self.notag,
                tagname=self.tagname,
                message=self.message,
                messagefile=self.messagefile,
            ),
            fetch=True if self.fetch else None,
            keep_local=True if self.keeplocal else None,
            force_delete=True if self.force_delete else None,
            delete_remote=delete_remote,
        )

    @staticmethod
    def _resume_hints(orchestrator, error: IntegrationConflictError) -> list[str]:
        if not error.resumable or orchestrator is None:
            return []
        record = orchestrator.store.load()
        if record is None:
            return []
        base = (
            f"flowline finish --type {record.branch_type} "
            f"--name {record.branch_name}"
        )
        return [
            f"Resolve the conflicts, commit, then run '{base} --continue'",
            f"To abort the finish, run '{base} --abort'",
        ]

    @staticmethod
    def _print_outcome(outcome: FinishOutcome) -> None:
        print(f"Finished '{outcome.branch}' into '{outcome.parent}'")
        if outcome.tag:
            print(f"Tagged '{outcome.tag}'")
        if outcome.updated_children:
            print(
                "Updated child branches: "
                + ", ".join(outcome.updated_children)
            )
        if outcome.deleted_local:
            print(f"Deleted branch '{outcome.branch}'")
        if outcome.deleted_remote:
            print(f"Deleted remote branch '{outcome.branch}'")
        for warning in outcome.warnings:
            print(f"Warning: {warning}", file=sys.stderr)
