"""Base classes for configuration and runtime state models.

This module contains the foundational classes used throughout
flowline:
- Closeable Protocol for resource cleanup
- BaseCloseable for automatic cleanup cascade
- BaseConfig for configuration models
- BaseState for per-run workflow state

These live in a separate module to avoid circular imports between
config.py and log.py.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

# ============================================================
# CLOSEABLE PROTOCOL AND BASE CLASS
# ============================================================

@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        """Release resources."""
        ...


class BaseCloseable(BaseModel):
    """Base class providing automatic cleanup of Closeable children.

    Any model inheriting from BaseCloseable:
    - Is a context manager
    - Walks its fields on close() and closes every Closeable child
    - Keeps closing the remaining children when one of them fails

    Cleanup cascade:
    State.__exit__() → Config.close() → Logger.close() → Sink.close()
    """

    def close(self):
        """Close all closeable child objects."""
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None:
                continue

            if isinstance(child, Closeable):
                try:
                    child.close()
                except Exception as e:
                    msg = f"Warning: Error closing {field_name}: {e}"
                    print(msg, file=sys.stderr)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


# ============================================================
# BASE CLASSES (semantic markers for readers)
# ============================================================

class BaseConfig(BaseCloseable):
    """Base class for all configuration sections.

    Marks a model as configuration (loaded from YAML, git config,
    environment or CLI) rather than state that changes while a
    workflow runs.
    """
    pass


class BaseState(BaseCloseable):
    """Base class for workflow runtime state.

    Runtime state is what a graph run mutates as it moves from node
    to node. It may hold live collaborators (drivers, stores), so
    arbitrary types are allowed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]
