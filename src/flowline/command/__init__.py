"""CLI command modules for flowline."""

from flowline.command.checkout import CheckoutCommand
from flowline.command.delete import DeleteCommand
from flowline.command.finish import FinishCommand
from flowline.command.list import ListCommand
from flowline.command.rename import RenameCommand
from flowline.command.start import StartCommand
from flowline.command.status import StatusCommand
from flowline.command.update import UpdateCommand

__all__ = [
    "CheckoutCommand",
    "DeleteCommand",
    "FinishCommand",
    "ListCommand",
    "RenameCommand",
    "StartCommand",
    "StatusCommand",
    "UpdateCommand",
]
