"""Short-name to full-branch-name resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flowline.core.errors import (
    AmbiguousBranchError,
    BranchNotFoundError,
    InvalidBranchNameError,
    UnknownBranchTypeError,
)
from flowline.core.log import logger
from flowline.model.branch import BaseBranch, BranchIdentity, BranchType
from flowline.model.hierarchy import BranchHierarchy

if TYPE_CHECKING:
    from flowline.git.base import VcsDriver


class BranchNameResolver:
    """Turn what the user typed into a full branch identity.

    `feature/auth`, `auth` and a unique prefix such as `au` all name
    the same branch when the type scope is `feature`. An exact short
    name wins over prefix matches.
    """

    def __init__(self, hierarchy: BranchHierarchy, driver: VcsDriver):
        self.hierarchy = hierarchy
        self.driver = driver

    def resolve(
        self,
        type_scope: str | None = None,
        user_input: str | None = None,
    ) -> BranchIdentity:
        """Resolve a branch name within an optional type scope.

        Args:
            type_scope: Topic type name (feature, release...), or None
                to infer it from the current branch
            user_input: Full name, short name or unique short-name
                prefix; None resolves the current branch

        Returns:
            BranchIdentity for exactly one existing branch

        Raises:
            BranchNotFoundError: Nothing matches
            AmbiguousBranchError: More than one branch matches
            UnknownBranchTypeError: The type cannot be determined
            InvalidBranchNameError: The input is blank
        """
        if user_input is None:
            return self._resolve_current(type_scope)

        user_input = user_input.strip()
        if not user_input:
            raise InvalidBranchNameError(user_input)

        if type_scope is None:
            if self.hierarchy.is_base(user_input):
                return self._base_identity(user_input)
            branch_type = self._explicit_type(user_input)
            if branch_type is None:
                kind = self._type_of_current()
                if isinstance(kind, BaseBranch):
                    raise UnknownBranchTypeError(user_input)
                branch_type = kind
        else:
            branch_type = self.hierarchy.topic_type(type_scope)

        return self._resolve_in_type(branch_type, user_input)

    def _resolve_in_type(
        self, branch_type: BranchType, user_input: str
    ) -> BranchIdentity:
        short = branch_type.short_name(user_input)

        existing = sorted(
            branch
            for branch in self.driver.list_branches()
            if branch.startswith(branch_type.prefix)
            and not self.hierarchy.is_base(branch)
        )
        shorts = {branch_type.short_name(b): b for b in existing}

        if short in shorts:
            full = shorts[short]
            logger.debug(
                "Resolved branch by exact name",
                input=user_input,
                branch=full,
            )
            return self._topic_identity(branch_type, full)

        matches = [
            full for name, full in shorts.items() if name.startswith(short)
        ]
        if not matches:
            raise BranchNotFoundError(branch_type.full_name(short))
        if len(matches) > 1:
            raise AmbiguousBranchError(user_input, matches)

        logger.debug(
            "Resolved branch by prefix",
            input=user_input,
            branch=matches[0],
        )
        return self._topic_identity(branch_type, matches[0])

    def _resolve_current(self, type_scope: str | None) -> BranchIdentity:
        current = self.driver.current_branch()
        if not current:
            raise InvalidBranchNameError("HEAD (detached)")

        kind = self.hierarchy.type_of(current)
        if isinstance(kind, BaseBranch):
            if type_scope is not None:
                raise UnknownBranchTypeError(current)
            return self._base_identity(current)

        if type_scope is not None and kind.name != type_scope:
            raise UnknownBranchTypeError(current)
        return self._topic_identity(kind, current)

    def _explicit_type(self, user_input: str) -> BranchType | None:
        """Type named by a full, prefixed branch name, if any."""
        for branch_type in self.hierarchy.branch_types:
            if branch_type.prefix and user_input.startswith(
                branch_type.prefix
            ):
                kind = self.hierarchy.type_of(user_input)
                if isinstance(kind, BranchType):
                    return kind
        return None

    def _type_of_current(self) -> BranchType | BaseBranch:
        current = self.driver.current_branch()
        if not current:
            raise InvalidBranchNameError("HEAD (detached)")
        return self.hierarchy.type_of(current)

    @staticmethod
    def _topic_identity(
        branch_type: BranchType, full_name: str
    ) -> BranchIdentity:
        return BranchIdentity(
            short_name=branch_type.short_name(full_name),
            full_name=full_name,
            branch_type=branch_type.name,
        )

    @staticmethod
    def _base_identity(name: str) -> BranchIdentity:
        return BranchIdentity(
            short_name=name,
            full_name=name,
            branch_type=name,
            is_base=True,
        )
