"""Persistence for the single in-flight operation record."""

from __future__ import annotations

import contextlib
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from flowline.core.errors import PersistenceError
from flowline.core.log import logger
from flowline.state.record import OperationRecord

STATE_FILE = Path("gitflow") / "state" / "merge.json"


class OperationStore(ABC):
    """Holds at most one OperationRecord.

    `save` overwrites whatever record is there; there is no queue.
    """

    @abstractmethod
    def save(self, record: OperationRecord) -> None:
        """Persist `record`, replacing any existing one."""

    @abstractmethod
    def load(self) -> OperationRecord | None:
        """Return the stored record, or None."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored record. A no-op when none exists."""

    def in_progress(self) -> bool:
        return self.load() is not None


class FileOperationStore(OperationStore):
    """JSON file store, normally `<git-dir>/gitflow/state/merge.json`.

    Writes go to a temporary file in the same directory which is then
    renamed over the target, so readers never see a partial record.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def for_git_dir(cls, git_dir: Path) -> FileOperationStore:
        return cls(Path(git_dir) / STATE_FILE)

    def save(self, record: OperationRecord) -> None:
        payload = record.to_json()
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".merge-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise PersistenceError(
                f"cannot write operation state to {self.path}: {e}"
            ) from e

        logger.debug(
            "Saved operation state",
            path=str(self.path),
            step=str(record.current_step),
        )

    def load(self) -> OperationRecord | None:
        try:
            data = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(
                f"cannot read operation state from {self.path}: {e}"
            ) from e

        try:
            return OperationRecord.from_json(data)
        except ValidationError as e:
            raise PersistenceError(
                f"operation state in {self.path} is corrupt: {e}"
            ) from e

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(
                f"cannot remove operation state {self.path}: {e}"
            ) from e
        logger.debug("Cleared operation state", path=str(self.path))


class MemoryOperationStore(OperationStore):
    """In-memory store for tests and dry runs."""

    def __init__(self):
        self._record: OperationRecord | None = None
        self.saves = 0

    def save(self, record: OperationRecord) -> None:
        self._record = record.model_copy(deep=True)
        self.saves += 1

    def load(self) -> OperationRecord | None:
        if self._record is None:
            return None
        return self._record.model_copy(deep=True)

    def clear(self) -> None:
        self._record = None
