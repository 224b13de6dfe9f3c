"""End-to-end tests against real git repositories."""

import asyncio
import shutil

import pytest
from conftest import make_hierarchy

from flowline.core.config import State
from flowline.core.errors import (
    BranchNotFoundError,
    MergeConflictError,
    UnmergedChangesError,
    UnresolvedConflictsError,
)
from flowline.core.runner import Runner
from flowline.core.settings_sources import GitConfigSettingsSource
from flowline.git.driver import GitDriver
from flowline.state.store import FileOperationStore
from flowline.workflow.context import FinishRequest
from flowline.workflow.orchestrator import FlowOrchestrator

pytestmark = pytest.mark.skipif(
    shutil.which("git") is None, reason="git is not installed"
)


def git(repo, *args):
    result = Runner().git(*args, cwd=repo)
    assert result.exited == 0, result.stderr
    return result.stdout.strip()


def commit_file(repo, name, content):
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-m", f"Update {name}")


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    git(path, "init", "--quiet")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.name", "Flowline Tests")
    git(path, "config", "user.email", "tests@example.com")
    git(path, "config", "commit.gpgsign", "false")
    git(path, "config", "tag.gpgsign", "false")
    commit_file(path, "VERSION", "0.1\n")
    git(path, "branch", "develop")
    return path


@pytest.fixture
def driver(repo):
    return GitDriver(repo)


@pytest.fixture
def orchestrator(driver):
    store = FileOperationStore.for_git_dir(driver.git_dir())
    return FlowOrchestrator(make_hierarchy(), driver, store)


def finish(orchestrator, type_name, name, **options):
    identity = orchestrator.resolver.resolve(type_name, name)
    return asyncio.run(orchestrator.finish(FinishRequest(
        identity=identity, **options
    )))


# ------------------------------------------------------------
# Driver
# ------------------------------------------------------------

def test_branch_queries(driver):
    assert driver.current_branch() == "main"
    assert sorted(driver.list_branches()) == ["develop", "main"]
    assert driver.branch_exists("develop")
    assert not driver.branch_exists("feature/x")
    assert driver.is_ancestor("main", "develop")


def test_create_and_checkout(driver, repo):
    driver.create_branch("feature/x", "develop")
    assert driver.current_branch() == "feature/x"

    driver.checkout("main")
    assert driver.current_branch() == "main"

    with pytest.raises(BranchNotFoundError):
        driver.checkout("feature/missing")


def test_merge_conflict_and_abort(driver, repo):
    git(repo, "checkout", "--quiet", "develop")
    commit_file(repo, "VERSION", "0.2-develop\n")
    git(repo, "checkout", "--quiet", "main")
    commit_file(repo, "VERSION", "0.2-main\n")

    result = driver.merge("develop")

    assert result.conflicted
    assert result.paths == ["VERSION"]
    assert driver.merge_in_progress()
    assert driver.has_unresolved_conflicts()

    driver.abort_merge()
    assert not driver.merge_in_progress()
    assert not driver.has_unresolved_conflicts()


def test_rebase_conflict_and_abort(driver, repo):
    git(repo, "checkout", "--quiet", "develop")
    commit_file(repo, "VERSION", "0.2-develop\n")
    git(repo, "checkout", "--quiet", "main")
    commit_file(repo, "VERSION", "0.2-main\n")
    driver.checkout("develop")

    result = driver.rebase("main")

    assert result.conflicted
    assert driver.rebase_in_progress()
    driver.abort_rebase()
    assert not driver.rebase_in_progress()
    assert driver.current_branch() == "develop"


def test_clean_merge_and_fast_forward(driver, repo):
    git(repo, "checkout", "--quiet", "develop")
    commit_file(repo, "feature.txt", "work\n")

    driver.checkout("main")
    assert driver.merge("develop", no_ff=False).ok
    assert git(repo, "rev-parse", "main") == git(repo, "rev-parse", "develop")


def test_squash_merge_commits_once(driver, repo):
    driver.create_branch("feature/x", "main")
    commit_file(repo, "a.txt", "a\n")
    commit_file(repo, "b.txt", "b\n")
    driver.checkout("main")

    assert driver.squash_merge("feature/x").ok

    assert (repo / "a.txt").exists() and (repo / "b.txt").exists()
    assert git(repo, "rev-list", "--count", "main") == "2"
    assert not driver.is_ancestor("feature/x", "main")


def test_squash_conflict_stays_pending_until_committed(driver, repo):
    driver.create_branch("feature/x", "main")
    commit_file(repo, "VERSION", "0.2-feature\n")
    driver.checkout("main")
    commit_file(repo, "VERSION", "0.2-main\n")

    assert driver.squash_merge("feature/x").conflicted
    assert driver.squash_in_progress()
    assert not driver.merge_in_progress()

    (repo / "VERSION").write_text("0.2\n")
    git(repo, "add", "VERSION")
    assert not driver.has_unresolved_conflicts()
    assert driver.squash_in_progress()

    git(repo, "commit", "--no-edit")
    assert not driver.squash_in_progress()


def test_abort_squash_conflict(driver, repo):
    driver.create_branch("feature/x", "main")
    commit_file(repo, "VERSION", "0.2-feature\n")
    driver.checkout("main")
    commit_file(repo, "VERSION", "0.2-main\n")
    assert driver.squash_merge("feature/x").conflicted

    driver.abort_merge()

    assert not driver.squash_in_progress()
    assert not driver.has_unresolved_conflicts()
    assert (repo / "VERSION").read_text() == "0.2-main\n"


def test_rename_branch(driver, repo):
    driver.create_branch("feature/x", "main")
    driver.rename_branch("feature/x", "feature/y")

    assert driver.current_branch() == "feature/y"
    assert not driver.branch_exists("feature/x")
    with pytest.raises(BranchNotFoundError):
        driver.rename_branch("feature/x", "feature/z")


def test_delete_unmerged_branch(driver, repo):
    driver.create_branch("feature/x", "main")
    commit_file(repo, "a.txt", "a\n")
    driver.checkout("main")

    with pytest.raises(UnmergedChangesError):
        driver.delete_branch("feature/x")
    driver.delete_branch("feature/x", force=True)
    assert not driver.branch_exists("feature/x")


def test_annotated_tag(driver, repo):
    driver.tag("1.0", "Tagging version 1.0")
    assert driver.tag_exists("1.0")
    assert git(repo, "cat-file", "-t", "1.0") == "tag"


def test_git_dir(driver, repo):
    assert driver.git_dir() == (repo / ".git").resolve()


def test_git_config_source_reads_gitflow_keys(repo):
    git(repo, "config", "gitflow.branch.main.type", "base")
    git(repo, "config", "gitflow.branch.develop.type", "base")
    git(repo, "config", "gitflow.branch.develop.parent", "main")
    git(repo, "config", "gitflow.feature.finish.keeplocal", "true")
    git(repo, "config", "gitflow.origin", "upstream")

    data = GitConfigSettingsSource(State, workdir=repo)()

    config = data["config"]
    assert config["remote"] == "upstream"
    assert config["branches"]["develop"] == {
        "type": "base",
        "parent": "main",
    }
    assert config["finish"]["feature"] == {"keeplocal": "true"}


# ------------------------------------------------------------
# Workflows
# ------------------------------------------------------------

def test_finish_feature(orchestrator, driver, repo):
    driver.create_branch("feature/login", "develop")
    commit_file(repo, "login.py", "print('login')\n")

    outcome = finish(orchestrator, "feature", "login")

    assert outcome.deleted_local
    assert driver.current_branch() == "develop"
    assert not driver.branch_exists("feature/login")
    # --no-ff leaves a merge commit with two parents
    parents = git(repo, "rev-list", "--parents", "-n", "1", "develop")
    assert len(parents.split()) == 3
    assert not orchestrator.store.path.exists()


@pytest.fixture
def conflicting_release(driver, repo):
    driver.create_branch("release/1.0", "develop")
    commit_file(repo, "VERSION", "1.0\n")
    driver.checkout("main")
    commit_file(repo, "VERSION", "0.1.1\n")
    return repo


def test_finish_conflict_then_continue(orchestrator, driver, conflicting_release):
    repo = conflicting_release

    with pytest.raises(MergeConflictError) as excinfo:
        finish(orchestrator, "release", "1.0")
    assert excinfo.value.paths == ["VERSION"]
    assert orchestrator.store.path.is_file()

    with pytest.raises(UnresolvedConflictsError):
        asyncio.run(orchestrator.continue_finish())

    (repo / "VERSION").write_text("1.0\n")
    git(repo, "add", "VERSION")
    git(repo, "commit", "--no-edit")

    outcome = asyncio.run(orchestrator.continue_finish("1.0", "release"))

    assert outcome.tag == "1.0"
    assert outcome.updated_children == ["develop"]
    assert driver.tag_exists("1.0")
    assert driver.is_ancestor("main", "develop")
    assert not driver.branch_exists("release/1.0")
    assert not orchestrator.store.path.exists()


def test_squash_finish_continue_requires_commit(driver, repo):
    store = FileOperationStore.for_git_dir(driver.git_dir())
    hierarchy = make_hierarchy(feature={"upstreamstrategy": "squash"})
    orchestrator = FlowOrchestrator(hierarchy, driver, store)
    driver.create_branch("feature/x", "develop")
    commit_file(repo, "VERSION", "feature\n")
    driver.checkout("develop")
    commit_file(repo, "VERSION", "develop\n")

    with pytest.raises(MergeConflictError):
        finish(orchestrator, "feature", "x")

    (repo / "VERSION").write_text("resolved\n")
    git(repo, "add", "VERSION")

    with pytest.raises(UnresolvedConflictsError, match="squash"):
        asyncio.run(orchestrator.continue_finish())
    assert git(repo, "show", "develop:VERSION") == "develop"
    assert store.path.is_file()

    git(repo, "commit", "--no-edit")
    outcome = asyncio.run(orchestrator.continue_finish("x", "feature"))

    assert outcome.parent == "develop"
    assert git(repo, "show", "develop:VERSION") == "resolved"
    # A squash leaves the branch unmerged by ancestry
    assert driver.branch_exists("feature/x")
    assert not store.path.exists()


def test_finish_conflict_then_abort(orchestrator, driver, conflicting_release):
    with pytest.raises(MergeConflictError):
        finish(orchestrator, "release", "1.0")

    branch = asyncio.run(orchestrator.abort_finish())

    assert branch == "release/1.0"
    assert not driver.merge_in_progress()
    assert driver.current_branch() == "release/1.0"
    assert not orchestrator.store.path.exists()


def test_finish_deletes_remote_branch(orchestrator, driver, repo, tmp_path):
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "--quiet", "--bare", str(remote))
    git(repo, "remote", "add", "origin", str(remote))
    driver.create_branch("feature/login", "develop")
    commit_file(repo, "login.py", "print('login')\n")
    git(repo, "push", "--quiet", "origin", "feature/login")
    git(repo, "fetch", "--quiet", "origin")
    assert driver.remote_branch_exists("origin", "feature/login")

    outcome = finish(orchestrator, "feature", "login", delete_remote=True)

    assert outcome.deleted_remote
    assert not driver.remote_branch_exists("origin", "feature/login")
    assert git(remote, "branch", "--list", "feature/login") == ""


def test_rename_and_delete_topic_branch(orchestrator, driver, repo):
    identity = asyncio.run(orchestrator.start("feature", "search"))
    commit_file(repo, "search.py", "query = None\n")

    renamed = asyncio.run(orchestrator.rename(identity, "find"))
    assert renamed.full_name == "feature/find"
    assert driver.current_branch() == "feature/find"
    assert [b.short_name for b in orchestrator.list_topic_branches(
        "feature"
    )] == ["find"]

    with pytest.raises(UnmergedChangesError):
        asyncio.run(orchestrator.delete(renamed))
    asyncio.run(orchestrator.delete(renamed, force=True))

    assert driver.current_branch() == "develop"
    assert not driver.branch_exists("feature/find")


def test_update_and_start(orchestrator, driver, repo):
    identity = asyncio.run(orchestrator.start("feature", "search"))
    assert driver.current_branch() == "feature/search"

    git(repo, "checkout", "--quiet", "develop")
    commit_file(repo, "shared.py", "x = 1\n")

    outcome = asyncio.run(orchestrator.update(identity))

    assert outcome.parent == "develop"
    assert driver.is_ancestor("develop", "feature/search")
    assert not orchestrator.store.path.exists()
