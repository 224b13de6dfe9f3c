"""Shared helpers for CLI commands."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from flowline.core.errors import FlowError
from flowline.core.log import logger

if TYPE_CHECKING:
    from flowline.core.config import State
    from flowline.workflow.orchestrator import FlowOrchestrator


def build_orchestrator(state: State) -> FlowOrchestrator:
    """Orchestrator over the repository in the current directory."""
    from flowline.workflow.orchestrator import FlowOrchestrator

    return FlowOrchestrator.from_config(state.config)


def report_error(error: FlowError, hints: list[str] | None = None) -> int:
    """Log and print a command failure.

    Returns:
        The exit code for the error's category
    """
    logger.error(
        "Command failed",
        error=str(error),
        kind=type(error).__name__,
        exit_code=int(error.exit_code),
    )
    print(f"Error: {error}", file=sys.stderr)
    for hint in hints or []:
        print(hint, file=sys.stderr)
    return int(error.exit_code)
