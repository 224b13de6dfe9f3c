#!/usr/bin/env python3
"""flowline CLI - hierarchical git branching workflows."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from flowline.command.checkout import CheckoutCommand
from flowline.command.delete import DeleteCommand
from flowline.command.finish import FinishCommand
from flowline.command.list import ListCommand
from flowline.command.rename import RenameCommand
from flowline.command.start import StartCommand
from flowline.command.status import StatusCommand
from flowline.command.update import UpdateCommand
from flowline.core.config import State


class CliState(State):
    """Git branching workflows over a configurable branch hierarchy.

    Base branches (main, develop...) form a tree; topic branches
    (feature/, release/...) are finished into their parent, after
    which the parent's child base branches are updated in turn.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.remote upstream)
    2. Environment variables (FLOWLINE_CONFIG__REMOTE=upstream)
    3. Repository git config (gitflow.branch.*, gitflow.<type>.finish.*)
    4. .flowline.yaml, user config and package defaults
    """

    finish: CliSubCommand[FinishCommand]
    update: CliSubCommand[UpdateCommand]
    start: CliSubCommand[StartCommand]
    checkout: CliSubCommand[CheckoutCommand]
    status: CliSubCommand[StatusCommand]
    list: CliSubCommand[ListCommand]
    delete: CliSubCommand[DeleteCommand]
    rename: CliSubCommand[RenameCommand]

    def cli_cmd(self):
        """Dispatch to active subcommand, or show help if none
        provided."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        run_name = type(subcommand).__name__.removesuffix("Command").lower()
        self.config.start_logging(run_name)

        # Closing the config closes the logger and its sinks
        with self.config:
            exit_code = asyncio.run(subcommand.run_workflow(self))
        raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
