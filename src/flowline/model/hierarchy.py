"""Typed, read-only view of the configured branch hierarchy."""

from __future__ import annotations

from collections.abc import Mapping

from flowline.core.errors import ConfigError, UnknownBranchTypeError
from flowline.model.branch import (
    BaseBranch,
    BranchConfig,
    BranchKind,
    BranchType,
    MergeStrategy,
)


class BranchHierarchy:
    """Base-branch tree plus topic branch types.

    Built once per invocation from the `branches` configuration
    mapping and never modified afterwards. Base branches are kept in
    an arena indexed by name; children lists preserve declaration
    order so cascades are deterministic.
    """

    def __init__(
        self,
        base_branches: list[BaseBranch],
        branch_types: list[BranchType],
    ):
        self._bases: dict[str, BaseBranch] = {}
        self._children: dict[str, list[str]] = {}
        self._types: dict[str, BranchType] = {}

        for base in base_branches:
            if base.name in self._bases:
                raise ConfigError(f"base branch '{base.name}' defined twice")
            self._bases[base.name] = base
            self._children.setdefault(base.name, [])
        for base in base_branches:
            if base.parent:
                self._children.setdefault(base.parent, []).append(base.name)

        for branch_type in branch_types:
            self._types[branch_type.name] = branch_type

    @classmethod
    def from_config(
        cls, branches: Mapping[str, BranchConfig]
    ) -> BranchHierarchy:
        """Build the hierarchy from configured branch entries.

        Args:
            branches: Branch name (base) or type name (topic) to its
                configuration, in declaration order

        Returns:
            BranchHierarchy for this invocation
        """
        bases = []
        types = []
        for name, entry in branches.items():
            if entry.type == BranchKind.BASE:
                bases.append(BaseBranch(
                    name=name,
                    parent=entry.parent,
                    upstream_strategy=entry.upstream_strategy,
                    downstream_strategy=entry.downstream_strategy,
                ))
                continue

            delete_remote = entry.delete_remote
            if entry.finish.deleteremote is not None:
                delete_remote = entry.finish.deleteremote
            types.append(BranchType(
                name=name,
                prefix=entry.prefix,
                parent=entry.parent,
                start_point=entry.start_point,
                upstream_strategy=entry.upstream_strategy,
                downstream_strategy=entry.downstream_strategy,
                tag_enabled=entry.tag,
                tag_prefix=entry.tag_prefix,
                delete_remote_default=delete_remote,
                fetch_default=entry.finish.fetch,
                notag_default=entry.finish.notag,
                message_file=entry.finish.messagefile,
                keep_local_default=entry.finish.keeplocal,
                force_delete_default=entry.finish.forcedelete,
            ))
        return cls(bases, types)

    # ------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------

    @property
    def base_branches(self) -> list[BaseBranch]:
        return list(self._bases.values())

    @property
    def branch_types(self) -> list[BranchType]:
        return list(self._types.values())

    def is_base(self, name: str) -> bool:
        return name in self._bases

    def base_branch(self, name: str) -> BaseBranch:
        try:
            return self._bases[name]
        except KeyError:
            raise ConfigError(
                f"base branch '{name}' is not configured"
            ) from None

    def topic_type(self, name: str) -> BranchType:
        try:
            return self._types[name]
        except KeyError:
            raise UnknownBranchTypeError(name) from None

    # ------------------------------------------------------------
    # Tree operations
    # ------------------------------------------------------------

    def resolve_base_branch_chain(self, name: str) -> list[BaseBranch]:
        """Return the base branches from the root down to `name`.

        Raises:
            ConfigError: If `name` or an ancestor is not configured,
                or the parent links form a cycle
        """
        chain = []
        seen = set()
        current = name
        while current:
            if current in seen:
                cycle = " -> ".join([b.name for b in reversed(chain)] + [current])
                raise ConfigError(f"cycle in base branch parents: {cycle}")
            seen.add(current)
            if current not in self._bases:
                if current == name:
                    raise ConfigError(
                        f"base branch '{name}' is not configured"
                    )
                raise ConfigError(
                    f"parent '{current}' of base branch '{chain[-1].name}' "
                    f"is not configured"
                )
            base = self._bases[current]
            chain.append(base)
            current = base.parent
        chain.reverse()
        return chain

    def children_of(self, name: str) -> list[BaseBranch]:
        """Direct base-branch children of `name`, in declaration order."""
        return [self._bases[child] for child in self._children.get(name, [])]

    def cascade_targets(self, name: str) -> list[BaseBranch]:
        """Children that receive a cascade after `name` changes.

        A child whose downstream strategy is `none` opts out.
        """
        return [
            child
            for child in self.children_of(name)
            if child.downstream_strategy != MergeStrategy.NONE
        ]

    def type_of(self, full_name: str) -> BranchType | BaseBranch:
        """Classify a full branch name.

        Base branches match by exact name. Otherwise the topic type
        with the longest matching prefix wins; a type with an empty
        prefix only matches when no prefixed type does.

        Raises:
            UnknownBranchTypeError: If nothing matches
        """
        if full_name in self._bases:
            return self._bases[full_name]

        best: BranchType | None = None
        for branch_type in self._types.values():
            if not full_name.startswith(branch_type.prefix):
                continue
            if best is None or len(branch_type.prefix) > len(best.prefix):
                best = branch_type
        if best is None or full_name == best.prefix:
            raise UnknownBranchTypeError(full_name)
        return best

    def parent_of(self, full_name: str) -> str:
        """Configured parent of a base or topic branch.

        Raises:
            ConfigError: For the root branch, which has no parent
            UnknownBranchTypeError: If the branch is unclassifiable
        """
        kind = self.type_of(full_name)
        if not kind.parent:
            raise ConfigError(
                f"branch '{full_name}' has no parent branch configured"
            )
        return kind.parent

    def validate(self) -> None:
        """Check the whole hierarchy before any mutation happens.

        Raises:
            ConfigError: On missing parents, cycles, multiple roots
                or topic types attached to unknown base branches
        """
        if not self._bases:
            raise ConfigError("no base branches are configured")

        for name in self._bases:
            self.resolve_base_branch_chain(name)

        roots = [b.name for b in self._bases.values() if b.is_root]
        if len(roots) != 1:
            raise ConfigError(
                f"expected exactly one root base branch, found: "
                f"{', '.join(sorted(roots)) or 'none'}"
            )

        for branch_type in self._types.values():
            if branch_type.parent not in self._bases:
                raise ConfigError(
                    f"branch type '{branch_type.name}' has parent "
                    f"'{branch_type.parent}' which is not a base branch"
                )
            if branch_type.start_ref not in self._bases:
                raise ConfigError(
                    f"branch type '{branch_type.name}' starts from "
                    f"'{branch_type.start_ref}' which is not a base branch"
                )
