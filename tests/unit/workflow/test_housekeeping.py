"""List, delete and rename tests against the in-memory driver."""

import asyncio

import pytest

from flowline.core.errors import (
    BranchExistsError,
    BranchNotFoundError,
    ConflictingOperationError,
    InvalidBranchNameError,
    RemoteError,
    UnmergedChangesError,
    UsageError,
)
from flowline.model.branch import MergeStrategy
from flowline.state.record import OperationRecord


def delete(orchestrator, type_name, name, **options):
    identity = orchestrator.resolver.resolve(type_name, name)
    return asyncio.run(orchestrator.delete(identity, **options))


def rename(orchestrator, type_name, name, new_name):
    identity = orchestrator.resolver.resolve(type_name, name)
    return asyncio.run(orchestrator.rename(identity, new_name))


@pytest.fixture
def topic_repo(driver):
    driver.create_branch("feature/login", "develop")
    driver.commit("feature/login")
    driver.create_branch("feature/search", "develop")
    driver.create_branch("hotfix/1.0.1", "main")
    driver.checkout("develop")
    return driver


def record_for(full_name, branch_type="feature"):
    return OperationRecord(
        branch_type=branch_type,
        branch_name=full_name.split("/", 1)[1],
        full_branch_name=full_name,
        parent_branch="develop",
        merge_strategy=MergeStrategy.MERGE,
    )


# ------------------------------------------------------------
# list
# ------------------------------------------------------------

def test_list_topic_branches_of_one_type(orchestrator, topic_repo):
    branches = orchestrator.list_topic_branches("feature")

    assert [b.full_name for b in branches] == [
        "feature/login", "feature/search",
    ]
    assert [b.short_name for b in branches] == ["login", "search"]
    assert {b.branch_type for b in branches} == {"feature"}


def test_list_type_without_branches(orchestrator, topic_repo):
    assert orchestrator.list_topic_branches("release") == []


# ------------------------------------------------------------
# delete
# ------------------------------------------------------------

def test_delete_merged_branch(orchestrator, topic_repo):
    assert delete(orchestrator, "feature", "search") is False
    assert not topic_repo.branch_exists("feature/search")


def test_delete_unmerged_branch_needs_force(orchestrator, topic_repo):
    with pytest.raises(UnmergedChangesError):
        delete(orchestrator, "feature", "login")
    assert topic_repo.branch_exists("feature/login")

    delete(orchestrator, "feature", "login", force=True)
    assert not topic_repo.branch_exists("feature/login")


def test_delete_current_branch_checks_out_parent(orchestrator, topic_repo):
    topic_repo.checkout("hotfix/1.0.1")

    delete(orchestrator, "hotfix", "1.0.1")

    assert topic_repo.current == "main"
    assert not topic_repo.branch_exists("hotfix/1.0.1")


def test_delete_remote_branch_when_asked(orchestrator, topic_repo):
    topic_repo.remote_branches.add(("origin", "feature/search"))

    assert delete(orchestrator, "feature", "search", delete_remote=True)
    assert topic_repo.remote_branches == set()


def test_remote_branch_kept_unless_asked(orchestrator, topic_repo):
    topic_repo.remote_branches.add(("origin", "feature/search"))

    assert delete(orchestrator, "feature", "search") is False
    assert ("origin", "feature/search") in topic_repo.remote_branches


def test_type_default_deletes_remote(topic_repo, store):
    from conftest import make_hierarchy

    from flowline.workflow.orchestrator import FlowOrchestrator

    hierarchy = make_hierarchy(feature={"deleteremote": True})
    orchestrator = FlowOrchestrator(hierarchy, topic_repo, store)
    topic_repo.remote_branches.add(("origin", "feature/search"))

    assert delete(orchestrator, "feature", "search")
    topic_repo.remote_branches.add(("origin", "feature/login"))
    assert delete(
        orchestrator, "feature", "login", force=True, delete_remote=False
    ) is False
    assert ("origin", "feature/login") in topic_repo.remote_branches


def test_remote_failure_is_reported(orchestrator, topic_repo):
    topic_repo.remote_branches.add(("origin", "feature/search"))
    topic_repo.push_error = "permission denied"

    with pytest.raises(RemoteError):
        delete(orchestrator, "feature", "search", delete_remote=True)
    assert not topic_repo.branch_exists("feature/search")


def test_delete_refused_for_base_branch(orchestrator, topic_repo):
    with pytest.raises(UsageError, match="base branch"):
        delete(orchestrator, None, "develop")
    assert topic_repo.branch_exists("develop")


def test_delete_refused_while_branch_is_finishing(
    orchestrator, topic_repo, store
):
    store.save(record_for("feature/login"))

    with pytest.raises(ConflictingOperationError):
        delete(orchestrator, "feature", "login", force=True)
    assert topic_repo.branch_exists("feature/login")

    # Other branches are not locked
    delete(orchestrator, "feature", "search")


# ------------------------------------------------------------
# rename
# ------------------------------------------------------------

def test_rename_keeps_type_prefix(orchestrator, topic_repo):
    login = set(topic_repo.commits["feature/login"])

    renamed = rename(orchestrator, "feature", "login", "signin")

    assert renamed.full_name == "feature/signin"
    assert renamed.short_name == "signin"
    assert renamed.branch_type == "feature"
    assert topic_repo.commits["feature/signin"] == login
    assert not topic_repo.branch_exists("feature/login")


def test_rename_current_branch(orchestrator, topic_repo):
    topic_repo.checkout("feature/login")

    rename(orchestrator, None, "login", "feature/signin")

    assert topic_repo.current == "feature/signin"


def test_rename_onto_existing_branch(orchestrator, topic_repo):
    with pytest.raises(BranchExistsError):
        rename(orchestrator, "feature", "login", "search")
    assert topic_repo.count("rename_branch") == 0


def test_rename_to_blank_name(orchestrator, topic_repo):
    with pytest.raises(InvalidBranchNameError):
        rename(orchestrator, "feature", "login", "  ")


def test_rename_missing_branch(orchestrator, topic_repo):
    with pytest.raises(BranchNotFoundError):
        rename(orchestrator, "feature", "missing", "other")


def test_rename_refused_while_branch_is_finishing(
    orchestrator, topic_repo, store
):
    store.save(record_for("feature/login"))

    with pytest.raises(ConflictingOperationError):
        rename(orchestrator, "feature", "login", "signin")
    assert topic_repo.branch_exists("feature/login")
