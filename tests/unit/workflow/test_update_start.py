"""Update and start workflow tests against the in-memory driver."""

import asyncio

import pytest

from flowline.core.errors import (
    BranchExistsError,
    BranchNotFoundError,
    ConfigError,
    ConflictingOperationError,
    InvalidBranchNameError,
    MergeConflictError,
)
from flowline.model.branch import MergeStrategy
from flowline.state.record import OperationRecord


def update(orchestrator, type_name, name, force_rebase=False):
    identity = orchestrator.resolver.resolve(type_name, name)
    return asyncio.run(orchestrator.update(identity, force_rebase))


@pytest.fixture
def stale_feature(driver):
    driver.create_branch("feature/login", "develop")
    driver.commit("feature/login")
    driver.commit("develop")
    return driver


def test_update_topic_uses_upstream_strategy(orchestrator, stale_feature, store):
    outcome = update(orchestrator, "feature", "login")

    assert outcome.branch == "feature/login"
    assert outcome.parent == "develop"
    assert outcome.strategy == MergeStrategy.MERGE
    assert stale_feature.is_ancestor("develop", "feature/login")
    assert store.saves == 0


def test_update_with_forced_rebase(orchestrator, stale_feature):
    outcome = update(orchestrator, "feature", "login", force_rebase=True)

    assert outcome.strategy == MergeStrategy.REBASE
    assert stale_feature.count("rebase", "develop", "feature/login") == 1
    assert stale_feature.count("merge") == 0


def test_update_base_branch_from_its_parent(orchestrator, driver):
    driver.commit("main")
    outcome = update(orchestrator, None, "develop")

    assert outcome.parent == "main"
    assert outcome.strategy == MergeStrategy.MERGE
    assert driver.is_ancestor("main", "develop")


def test_update_root_branch_is_an_error(orchestrator):
    with pytest.raises(ConfigError):
        update(orchestrator, None, "main")


def test_update_conflict_is_not_resumable(orchestrator, stale_feature, store):
    stale_feature.conflicts[("develop", "feature/login")] = ["app.py"]

    with pytest.raises(MergeConflictError) as excinfo:
        update(orchestrator, "feature", "login")

    assert not excinfo.value.resumable
    assert store.load() is None
    assert stale_feature.has_unresolved_conflicts()


def test_update_refused_during_finish(orchestrator, stale_feature, store):
    store.save(OperationRecord(
        branch_type="release",
        branch_name="1.0",
        full_branch_name="release/1.0",
        parent_branch="main",
        merge_strategy=MergeStrategy.MERGE,
    ))
    with pytest.raises(ConflictingOperationError):
        update(orchestrator, "feature", "login")
    assert stale_feature.count("merge") == 0


def test_start_creates_branch_from_start_point(orchestrator, driver):
    driver.commit("develop")

    identity = asyncio.run(orchestrator.start("release", "2.0"))

    assert identity.full_name == "release/2.0"
    assert identity.short_name == "2.0"
    assert identity.branch_type == "release"
    assert driver.current == "release/2.0"
    assert driver.commits["release/2.0"] == driver.commits["develop"]


def test_start_accepts_full_name(orchestrator, driver):
    identity = asyncio.run(orchestrator.start("feature", "feature/login"))
    assert identity.full_name == "feature/login"
    assert driver.branch_exists("feature/login")


def test_start_existing_branch(orchestrator, driver):
    driver.create_branch("feature/login", "develop")
    with pytest.raises(BranchExistsError):
        asyncio.run(orchestrator.start("feature", "login"))


def test_start_without_start_point(hierarchy, store):
    from conftest import FakeDriver

    from flowline.workflow.orchestrator import FlowOrchestrator

    orchestrator = FlowOrchestrator(hierarchy, FakeDriver(("main",)), store)
    with pytest.raises(BranchNotFoundError, match="develop"):
        asyncio.run(orchestrator.start("feature", "login"))


def test_start_blank_name(orchestrator):
    with pytest.raises(InvalidBranchNameError):
        asyncio.run(orchestrator.start("feature", "  "))


def test_start_fetches_when_asked(orchestrator, driver):
    asyncio.run(orchestrator.start("hotfix", "1.0.1", fetch=True))
    assert ("fetch", "origin") in driver.calls
