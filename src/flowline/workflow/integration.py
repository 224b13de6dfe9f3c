"""Strategy-driven integration between branches."""

from __future__ import annotations

from flowline.core.errors import (
    ConfigError,
    GitCommandError,
    IntegrationConflictError,
    MergeConflictError,
    RebaseConflictError,
)
from flowline.core.log import logger
from flowline.git.base import IntegrationResult, VcsDriver
from flowline.model.branch import MergeStrategy


def fold_into_parent(
    driver: VcsDriver,
    strategy: MergeStrategy,
    branch: str,
    parent: str,
) -> None:
    """Integrate a finished topic branch into its parent.

    merge:  checkout parent, merge --no-ff branch
    rebase: rebase branch onto parent, then fast-forward parent
    squash: checkout parent, squash-merge branch and commit

    Raises:
        MergeConflictError / RebaseConflictError: On conflicts; the
            working tree is left conflicted
        GitCommandError: On any other failure
    """
    logger.info(
        "Integrating branch into parent",
        branch=branch,
        parent=parent,
        strategy=str(strategy),
    )

    if strategy == MergeStrategy.REBASE:
        driver.checkout(branch)
        _raise_on_failure(
            driver.rebase(parent), RebaseConflictError, branch, parent
        )
        driver.checkout(parent)
        _raise_on_failure(
            driver.merge(branch, no_ff=False), MergeConflictError, branch, parent
        )
        return

    driver.checkout(parent)
    if strategy == MergeStrategy.SQUASH:
        result = driver.squash_merge(branch)
    elif strategy == MergeStrategy.MERGE:
        result = driver.merge(branch)
    else:
        raise ConfigError(
            f"cannot integrate '{branch}' into '{parent}' "
            f"with strategy '{strategy}'"
        )
    _raise_on_failure(result, MergeConflictError, branch, parent)


def receive_from(
    driver: VcsDriver,
    strategy: MergeStrategy,
    branch: str,
    source: str,
) -> None:
    """Bring the changes of `source` into `branch`.

    Used for updates and for cascading a base branch into its
    children. A `none` strategy is treated as merge.

    Raises:
        MergeConflictError / RebaseConflictError: On conflicts
        GitCommandError: On any other failure
    """
    logger.info(
        "Updating branch",
        branch=branch,
        source=source,
        strategy=str(strategy),
    )

    driver.checkout(branch)
    if strategy == MergeStrategy.REBASE:
        _raise_on_failure(
            driver.rebase(source), RebaseConflictError, source, branch
        )
    elif strategy == MergeStrategy.SQUASH:
        _raise_on_failure(
            driver.squash_merge(source), MergeConflictError, source, branch
        )
    else:
        _raise_on_failure(
            driver.merge(source), MergeConflictError, source, branch
        )


def _raise_on_failure(
    result: IntegrationResult,
    conflict_error: type[IntegrationConflictError],
    source: str,
    target: str,
) -> None:
    if result.ok:
        return
    if result.conflicted:
        raise conflict_error(source, target, result.paths)
    raise GitCommandError(
        f"integrate '{source}' into '{target}'", result.output
    )
