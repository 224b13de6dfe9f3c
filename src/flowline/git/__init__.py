"""Version control drivers."""

from flowline.git.base import IntegrationResult, IntegrationStatus, VcsDriver
from flowline.git.driver import GitDriver

__all__ = [
    "GitDriver",
    "IntegrationResult",
    "IntegrationStatus",
    "VcsDriver",
]
