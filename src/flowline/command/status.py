"""Status command - show the branch hierarchy and any finish in progress."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from flowline.command.base import build_orchestrator, report_error
from flowline.core.errors import FlowError, UnknownBranchTypeError
from flowline.model.branch import BaseBranch

if TYPE_CHECKING:
    from flowline.core.config import State
    from flowline.workflow.orchestrator import FlowOrchestrator


class StatusCommand(BaseModel):
    """Show the configured hierarchy, the current branch and the
    state of an interrupted finish."""

    async def run_workflow(self, state: State) -> int:
        try:
            orchestrator = build_orchestrator(state)
            lines = self.render(orchestrator)
        except FlowError as e:
            return report_error(e)

        print("\n".join(lines))
        return 0

    def render(self, orchestrator: FlowOrchestrator) -> list[str]:
        hierarchy = orchestrator.hierarchy
        lines = ["Base branches:"]

        def walk(base: BaseBranch, depth: int):
            strategy = (
                "" if base.is_root else f" ({base.downstream_strategy})"
            )
            lines.append(f"{'  ' * (depth + 1)}{base.name}{strategy}")
            for child in hierarchy.children_of(base.name):
                walk(child, depth + 1)

        for base in hierarchy.base_branches:
            if base.is_root:
                walk(base, 0)

        lines.append("Topic types:")
        for topic in hierarchy.branch_types:
            tag = ", tagged" if topic.tag_enabled else ""
            lines.append(
                f"  {topic.name}: {topic.prefix}* -> {topic.parent} "
                f"({topic.upstream_strategy}{tag})"
            )

        current = orchestrator.driver.current_branch()
        if current is None:
            lines.append("Current branch: (detached HEAD)")
        else:
            try:
                kind = hierarchy.type_of(current)
                label = "base" if isinstance(kind, BaseBranch) else kind.name
            except UnknownBranchTypeError:
                label = "untyped"
            lines.append(f"Current branch: {current} ({label})")

        record = orchestrator.store.load()
        if record is None:
            lines.append("No finish in progress")
        else:
            lines.append(
                f"Finish in progress: {record.full_branch_name} -> "
                f"{record.parent_branch} at step '{record.current_step}'"
            )
            if record.child_branches:
                lines.append(
                    f"  children updated: {len(record.updated_branches)}"
                    f"/{len(record.child_branches)}"
                )
        return lines
