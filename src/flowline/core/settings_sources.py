"""Settings sources: YAML files with includes, and the repository git config."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_dir
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    YamlConfigSettingsSource,
)

from flowline.core.errors import ConfigError
from flowline.core.log import logger
from flowline.core.runner import Runner

DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base (override wins).

    Args:
        base: Base dictionary
        override: Override dictionary (takes precedence)

    Returns:
        New dictionary with deep merge applied
    """
    result = base.copy()
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class YamlSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with include: directive and --include
    CLI support.

    Deep merges, lowest priority first: package defaults, the user
    config file, the project `.flowline.yaml`, then --include files.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        includes = []
        argv = sys.argv[1:]
        for i, arg in enumerate(argv):
            if arg == "--include" and i + 1 < len(argv):
                includes.append(argv[i + 1])
            elif arg.startswith("--include="):
                includes.append(arg.split("=", 1)[1])

        base = yaml_file or settings_cls.model_config.get("yaml_file")
        if base and includes:
            yaml_file = (
                [base] if isinstance(base, (str, os.PathLike)) else list(base)
            ) + includes
        elif includes:
            yaml_file = includes
        else:
            yaml_file = base

        super().__init__(settings_cls, yaml_file)

    def _read_files(self, files, *_args, **_kwargs):
        """Load defaults, user config, project config and includes.

        Args:
            files: Project file and --include file path(s)

        Returns:
            Deep-merged dictionary of all loaded data
        """
        files_to_load = [
            DEFAULTS_FILE,
            Path(user_config_dir("flowline", appauthor=False))
            / "flowline.yaml",
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            files_to_load.extend(Path(f).expanduser() for f in files)

        result = {}
        for file_path in files_to_load:
            if file_path.is_file():
                logger.debug("Loading configuration", file=str(file_path))
                data = self._load_file_recursive(file_path, set())
                result = deep_merge(result, data)
            else:
                logger.debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )
        return result

    def _load_file_recursive(self, filepath: Path, visited: set[Path]) -> dict:
        """Load a file and resolve its include: directives.

        Raises:
            ConfigError: On a circular include or malformed YAML
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ConfigError(f"circular include: {filepath}")
        visited.add(filepath)

        try:
            with open(filepath, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot load {filepath}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{filepath} must contain a mapping")

        if "include" in data:
            includes = data.pop("include")
            if isinstance(includes, str):
                includes = [includes]

            for inc in includes:
                inc_path = self._resolve_path(inc, filepath)
                logger.debug(
                    "Including configuration",
                    included_from=str(filepath),
                    include_file=str(inc_path),
                )
                inc_data = self._load_file_recursive(inc_path, visited.copy())
                data = deep_merge(inc_data, data)

        return data

    def _resolve_path(self, include_path: str, relative_to: Path) -> Path:
        path = Path(include_path).expanduser()
        if path.is_absolute():
            return path
        return (relative_to.parent / path).resolve()


class GitConfigSettingsSource(PydanticBaseSettingsSource):
    """Reads the branch hierarchy from `gitflow.*` git config keys.

    Recognised keys:
        gitflow.branch.<name>.<property>  -> config.branches[name]
        gitflow.<type>.finish.<option>    -> config.finish[type]
        gitflow.origin                    -> config.remote
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        workdir: Path | None = None,
        runner: Runner | None = None,
    ):
        super().__init__(settings_cls)
        self.workdir = workdir
        self.runner = runner or Runner()

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        # Values are produced all at once by __call__
        return None, field_name, False

    def read_entries(self) -> list[tuple[str, str]]:
        """Return (key, value) pairs for every gitflow.* setting."""
        result = self.runner.git(
            "config", "--get-regexp", r"^gitflow\.", cwd=self.workdir
        )
        # Exit status 1 means no matching keys
        if result.exited != 0:
            return []

        entries = []
        for line in result.stdout.splitlines():
            key, _, value = line.strip().partition(" ")
            if key:
                entries.append((key, value))
        return entries

    def __call__(self) -> dict[str, Any]:
        return {"config": parse_gitflow_entries(self.read_entries())}


def parse_gitflow_entries(entries: list[tuple[str, str]]) -> dict[str, Any]:
    """Map `gitflow.*` key/value pairs onto Config fields.

    Keys are matched case-insensitively, except for branch names,
    which git preserves as given.
    """
    branches: dict[str, dict[str, Any]] = {}
    finish: dict[str, dict[str, Any]] = {}
    config: dict[str, Any] = {}

    for key, value in entries:
        parts = key.split(".")
        if len(parts) < 2 or parts[0].lower() != "gitflow":
            continue

        if parts[1].lower() == "branch" and len(parts) >= 4:
            name = ".".join(parts[2:-1])
            branches.setdefault(name, {})[parts[-1].lower()] = value
        elif len(parts) >= 4 and parts[-2].lower() == "finish":
            branch_type = ".".join(parts[1:-2])
            finish.setdefault(branch_type, {})[parts[-1].lower()] = value
        elif len(parts) == 2 and parts[1].lower() == "origin":
            config["remote"] = value

    if branches:
        config["branches"] = branches
    if finish:
        config["finish"] = finish
    return config
