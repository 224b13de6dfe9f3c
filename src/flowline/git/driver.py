"""VcsDriver implementation that shells out to git."""

from __future__ import annotations

from pathlib import Path

from invoke import Result

from flowline.core.errors import (
    BranchNotFoundError,
    GitCommandError,
    RemoteError,
    UnmergedChangesError,
)
from flowline.core.log import logger
from flowline.core.runner import Runner
from flowline.git.base import IntegrationResult, IntegrationStatus, VcsDriver

# Output fragments git prints when an integration stops on conflicts
_CONFLICT_MARKERS = (
    "CONFLICT",
    "Automatic merge failed",
    "could not apply",
    "needs merge",
)


class GitDriver(VcsDriver):
    """Git working tree at `workdir`, driven through Runner."""

    def __init__(self, workdir: Path | None = None, runner: Runner | None = None):
        self.workdir = Path(workdir) if workdir else Path.cwd()
        self.runner = runner or Runner()

    # ------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------

    def _git(self, *args: str, env: dict[str, str] | None = None) -> Result:
        return self.runner.git(*args, cwd=self.workdir, env=env)

    def _check(self, operation: str, *args: str) -> Result:
        result = self._git(*args)
        if result.exited != 0:
            raise GitCommandError(operation, _output(result))
        return result

    def _succeeds(self, *args: str) -> bool:
        return self._git(*args).exited == 0

    def _unmerged_paths(self) -> list[str]:
        result = self._git("diff", "--name-only", "--diff-filter=U")
        if result.exited != 0:
            return []
        return sorted({
            line.strip() for line in result.stdout.splitlines() if line.strip()
        })

    def _integration_result(self, result: Result) -> IntegrationResult:
        output = _output(result)
        if result.exited == 0:
            return IntegrationResult(status=IntegrationStatus.OK, output=output)

        paths = self._unmerged_paths()
        if paths or any(marker in output for marker in _CONFLICT_MARKERS):
            return IntegrationResult(
                status=IntegrationStatus.CONFLICT, paths=paths, output=output
            )
        return IntegrationResult(status=IntegrationStatus.ERROR, output=output)

    # ------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------

    def checkout(self, branch: str) -> None:
        if not self.branch_exists(branch):
            raise BranchNotFoundError(branch)
        self._check(f"checkout '{branch}'", "checkout", branch)
        logger.debug("Checked out branch", branch=branch)

    def create_branch(self, name: str, start_point: str) -> None:
        self._check(
            f"create branch '{name}' from '{start_point}'",
            "checkout", "-b", name, start_point,
        )
        logger.debug("Created branch", branch=name, start_point=start_point)

    def rename_branch(self, old: str, new: str) -> None:
        if not self.branch_exists(old):
            raise BranchNotFoundError(old)
        self._check(
            f"rename branch '{old}' to '{new}'", "branch", "-m", old, new
        )
        logger.debug("Renamed branch", old=old, new=new)

    def delete_branch(self, name: str, force: bool = False) -> None:
        result = self._git("branch", "-D" if force else "-d", name)
        if result.exited == 0:
            logger.debug("Deleted branch", branch=name, force=force)
            return

        output = _output(result)
        if "not fully merged" in output:
            raise UnmergedChangesError(name)
        if "not found" in output:
            raise BranchNotFoundError(name)
        raise GitCommandError(f"delete branch '{name}'", output)

    def current_branch(self) -> str | None:
        result = self._git("symbolic-ref", "--quiet", "--short", "HEAD")
        if result.exited != 0:
            return None
        return result.stdout.strip() or None

    def branch_exists(self, name: str) -> bool:
        return self._succeeds(
            "rev-parse", "--verify", "--quiet", f"refs/heads/{name}"
        )

    def list_branches(self) -> list[str]:
        result = self._check(
            "list branches", "branch", "--format=%(refname:short)"
        )
        return [
            line.strip() for line in result.stdout.splitlines() if line.strip()
        ]

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._git("merge-base", "--is-ancestor", ancestor, descendant)
        if result.exited in (0, 1):
            return result.exited == 0
        raise GitCommandError(
            f"compare '{ancestor}' with '{descendant}'", _output(result)
        )

    # ------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------

    def merge(self, branch: str, no_ff: bool = True) -> IntegrationResult:
        args = ["merge", "--no-edit"]
        args.append("--no-ff" if no_ff else "--ff")
        args.append(branch)
        result = self._git(*args, env={"GIT_MERGE_AUTOEDIT": "no"})
        outcome = self._integration_result(result)
        logger.debug("Merge finished", branch=branch, status=str(outcome.status))
        return outcome

    def squash_merge(
        self, branch: str, message: str | None = None
    ) -> IntegrationResult:
        result = self._git("merge", "--squash", branch)
        outcome = self._integration_result(result)
        if not outcome.ok:
            return outcome

        message = message or f"Squashed commit of branch '{branch}'"
        result = self._git("commit", "-m", message)
        if result.exited != 0:
            return IntegrationResult(
                status=IntegrationStatus.ERROR, output=_output(result)
            )
        logger.debug("Squash merge committed", branch=branch)
        return outcome

    def rebase(self, onto: str) -> IntegrationResult:
        result = self._git("rebase", onto, env={"GIT_EDITOR": "true"})
        outcome = self._integration_result(result)
        if outcome.status == IntegrationStatus.ERROR and self.rebase_in_progress():
            outcome = IntegrationResult(
                status=IntegrationStatus.CONFLICT,
                paths=outcome.paths,
                output=outcome.output,
            )
        logger.debug("Rebase finished", onto=onto, status=str(outcome.status))
        return outcome

    def abort_merge(self) -> None:
        if self.merge_in_progress():
            self._check("abort merge", "merge", "--abort")
        else:
            # Squash merges leave no MERGE_HEAD to abort
            self._check("abort merge", "reset", "--merge")

    def abort_rebase(self) -> None:
        self._check("abort rebase", "rebase", "--abort")

    def has_unresolved_conflicts(self) -> bool:
        return bool(self._unmerged_paths())

    def merge_in_progress(self) -> bool:
        return (self.git_dir() / "MERGE_HEAD").exists()

    def squash_in_progress(self) -> bool:
        # git removes SQUASH_MSG once the squash is committed
        return (self.git_dir() / "SQUASH_MSG").exists()

    def rebase_in_progress(self) -> bool:
        git_dir = self.git_dir()
        return (
            (git_dir / "rebase-merge").exists()
            or (git_dir / "rebase-apply").exists()
        )

    # ------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------

    def tag(self, name: str, message: str) -> None:
        self._check(f"create tag '{name}'", "tag", "-a", name, "-m", message)
        logger.debug("Created tag", tag=name)

    def tag_exists(self, name: str) -> bool:
        return self._succeeds(
            "rev-parse", "--verify", "--quiet", f"refs/tags/{name}"
        )

    # ------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------

    def fetch(self, remote: str) -> None:
        result = self._git("fetch", remote)
        if result.exited != 0:
            raise RemoteError(
                f"failed to fetch from remote '{remote}': {_output(result)}"
            )
        logger.debug("Fetched remote", remote=remote)

    def remote_branch_exists(self, remote: str, branch: str) -> bool:
        return self._succeeds(
            "rev-parse", "--verify", "--quiet",
            f"refs/remotes/{remote}/{branch}",
        )

    def delete_remote_branch(self, remote: str, branch: str) -> None:
        result = self._git("push", remote, f":{branch}")
        if result.exited != 0:
            raise RemoteError(
                f"failed to delete remote branch '{remote}/{branch}': "
                f"{_output(result)}"
            )
        logger.debug("Deleted remote branch", remote=remote, branch=branch)

    # ------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------

    def git_dir(self) -> Path:
        result = self._check(
            "locate repository", "rev-parse", "--absolute-git-dir"
        )
        return Path(result.stdout.strip())


def _output(result: Result) -> str:
    return "\n".join(
        part.strip() for part in (result.stdout, result.stderr) if part.strip()
    )
