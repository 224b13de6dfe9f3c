"""Pytest configuration and fixtures for flowline tests."""

import sys
import tempfile
from pathlib import Path

import pytest

from flowline.core.errors import (
    BranchNotFoundError,
    GitCommandError,
    RemoteError,
    UnmergedChangesError,
)
from flowline.core.log import ConsoleSink, setup_logger
from flowline.git.base import IntegrationResult, IntegrationStatus, VcsDriver
from flowline.model.branch import BranchConfig
from flowline.model.hierarchy import BranchHierarchy
from flowline.state.store import MemoryOperationStore
from flowline.workflow.orchestrator import FlowOrchestrator

# Mirrors the package defaults
DEFAULT_BRANCHES = {
    "main": {
        "type": "base",
        "parent": "",
        "upstreamstrategy": "none",
        "downstreamstrategy": "none",
    },
    "develop": {
        "type": "base",
        "parent": "main",
        "upstreamstrategy": "merge",
        "downstreamstrategy": "merge",
    },
    "feature": {
        "type": "topic",
        "prefix": "feature/",
        "parent": "develop",
        "upstreamstrategy": "merge",
        "downstreamstrategy": "rebase",
    },
    "release": {
        "type": "topic",
        "prefix": "release/",
        "parent": "main",
        "startpoint": "develop",
        "tag": True,
    },
    "hotfix": {
        "type": "topic",
        "prefix": "hotfix/",
        "parent": "main",
        "tag": True,
    },
    "support": {
        "type": "topic",
        "prefix": "support/",
        "parent": "main",
        "upstreamstrategy": "none",
        "downstreamstrategy": "none",
    },
}

# Calls that change the repository
MUTATING_CALLS = {
    "checkout",
    "create_branch",
    "delete_branch",
    "rename_branch",
    "merge",
    "squash_merge",
    "rebase",
    "abort_merge",
    "abort_rebase",
    "tag",
    "delete_remote_branch",
}


def make_hierarchy(branches: dict | None = None, **overrides) -> BranchHierarchy:
    """Build a hierarchy from raw config entries.

    Keyword overrides are merged into (or added to) the default entries.
    """
    entries = {name: dict(entry) for name, entry in
               (branches or DEFAULT_BRANCHES).items()}
    for name, entry in overrides.items():
        entries.setdefault(name, {}).update(entry)
    return BranchHierarchy.from_config({
        name: BranchConfig.model_validate(entry)
        for name, entry in entries.items()
    })


class FakeDriver(VcsDriver):
    """In-memory VcsDriver.

    Each branch is the set of commit ids reachable from its tip, so
    ancestry is a subset test and a merge is a union. Conflicts are
    scripted per (source, target) pair and fire once.
    """

    def __init__(self, branches=("main", "develop"), current="main"):
        self._counter = 0
        root = self._new_commit()
        self.commits: dict[str, set[str]] = {b: {root} for b in branches}
        self.current: str | None = current
        self.tags: dict[str, tuple[str, str]] = {}
        self.remote_branches: set[tuple[str, str]] = set()
        self.conflicts: dict[tuple[str, str], list[str]] = {}
        self.pending: dict | None = None
        self.unresolved: list[str] = []
        self.calls: list[tuple] = []
        self.fetch_error: str | None = None
        self.push_error: str | None = None

    # Test helpers

    def _new_commit(self) -> str:
        self._counter += 1
        return f"c{self._counter}"

    def commit(self, branch: str) -> str:
        """Add a new commit on top of `branch`."""
        commit = self._new_commit()
        self.commits[branch].add(commit)
        return commit

    def resolve(self, commit: bool = True) -> None:
        """Play the user resolving conflicts (and committing)."""
        self.unresolved = []
        if commit and self.pending is not None:
            self.commits[self.pending["target"]] = self.pending["result"]
            self.pending = None

    def mutations(self) -> list[tuple]:
        return [call for call in self.calls if call[0] in MUTATING_CALLS]

    def count(self, name: str, *args) -> int:
        return sum(
            1 for call in self.calls
            if call[0] == name and call[1:1 + len(args)] == args
        )

    def _integrate(self, kind, source, target, result) -> IntegrationResult:
        paths = self.conflicts.pop((source, target), None)
        if paths:
            self.pending = {"kind": kind, "target": target, "result": result}
            self.unresolved = list(paths)
            return IntegrationResult(
                status=IntegrationStatus.CONFLICT, paths=list(paths)
            )
        self.commits[target] = result
        return IntegrationResult(status=IntegrationStatus.OK)

    # Branches

    def checkout(self, branch):
        self.calls.append(("checkout", branch))
        if branch not in self.commits:
            raise BranchNotFoundError(branch)
        self.current = branch

    def create_branch(self, name, start_point):
        self.calls.append(("create_branch", name, start_point))
        self.commits[name] = set(self.commits[start_point])
        self.current = name

    def delete_branch(self, name, force=False):
        self.calls.append(("delete_branch", name, force))
        if name not in self.commits:
            raise BranchNotFoundError(name)
        if name == self.current:
            raise GitCommandError(f"delete branch '{name}'", "checked out")
        if not force and not self.commits[name] <= self.commits[self.current]:
            raise UnmergedChangesError(name)
        del self.commits[name]

    def rename_branch(self, old, new):
        self.calls.append(("rename_branch", old, new))
        if old not in self.commits:
            raise BranchNotFoundError(old)
        self.commits[new] = self.commits.pop(old)
        if self.current == old:
            self.current = new

    def current_branch(self):
        return self.current

    def branch_exists(self, name):
        return name in self.commits

    def list_branches(self):
        return sorted(self.commits)

    def is_ancestor(self, ancestor, descendant):
        return self.commits[ancestor] <= self.commits[descendant]

    # Integration

    def merge(self, branch, no_ff=True):
        target = self.current
        self.calls.append(("merge", branch, target))
        theirs = self.commits[branch]
        ours = self.commits[target]
        if theirs <= ours:
            return IntegrationResult(status=IntegrationStatus.OK)
        if not no_ff and ours <= theirs:
            result = set(theirs)
        else:
            result = ours | theirs | {self._new_commit()}
        return self._integrate("merge", branch, target, result)

    def squash_merge(self, branch, message=None):
        target = self.current
        self.calls.append(("squash_merge", branch, target))
        result = self.commits[target] | {self._new_commit()}
        return self._integrate("squash", branch, target, result)

    def rebase(self, onto):
        target = self.current
        self.calls.append(("rebase", onto, target))
        base = self.commits[onto]
        ours = self.commits[target]
        if base <= ours:
            return IntegrationResult(status=IntegrationStatus.OK)
        result = base | {f"{c}'" for c in ours - base}
        return self._integrate("rebase", onto, target, result)

    def abort_merge(self):
        self.calls.append(("abort_merge",))
        self.pending = None
        self.unresolved = []

    def abort_rebase(self):
        self.calls.append(("abort_rebase",))
        self.pending = None
        self.unresolved = []

    def has_unresolved_conflicts(self):
        return bool(self.unresolved)

    def merge_in_progress(self):
        return self.pending is not None and self.pending["kind"] == "merge"

    def rebase_in_progress(self):
        return self.pending is not None and self.pending["kind"] == "rebase"

    def squash_in_progress(self):
        return self.pending is not None and self.pending["kind"] == "squash"

    # Tags

    def tag(self, name, message):
        self.calls.append(("tag", name, message))
        self.tags[name] = (self.current, message)

    def tag_exists(self, name):
        return name in self.tags

    # Remote

    def fetch(self, remote):
        self.calls.append(("fetch", remote))
        if self.fetch_error:
            raise RemoteError(self.fetch_error)

    def remote_branch_exists(self, remote, branch):
        return (remote, branch) in self.remote_branches

    def delete_remote_branch(self, remote, branch):
        self.calls.append(("delete_remote_branch", remote, branch))
        if self.push_error:
            raise RemoteError(self.push_error)
        self.remote_branches.discard((remote, branch))

    def git_dir(self):
        return Path("/nonexistent/.git")


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure console-only debug logging for the test run."""
    test_log_root = Path(tempfile.gettempdir()) / "flowline-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def hierarchy():
    """Hierarchy with the default gitflow branch layout."""
    return make_hierarchy()


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def store():
    return MemoryOperationStore()


@pytest.fixture
def orchestrator(hierarchy, driver, store):
    return FlowOrchestrator(hierarchy, driver, store)


@pytest.fixture
def clean_argv():
    """Replace sys.argv so settings sources see no CLI arguments."""
    old_argv = sys.argv
    sys.argv = ["flowline"]
    try:
        yield
    finally:
        sys.argv = old_argv
