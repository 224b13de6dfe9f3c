"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from flowline.core.base import BaseConfig
from flowline.core.log import Logger
from flowline.core.settings_sources import (
    GitConfigSettingsSource,
    YamlSettingsSource,
)
from flowline.model.branch import BranchConfig, FinishDefaults
from flowline.model.hierarchy import BranchHierarchy

# ============================================================
# TEMPLATE SUBSTITUTION NAMESPACE
# ============================================================

# Modules available for template substitution in YAML files
# Usage: {platformdirs.user_state_dir}, {Path.cwd}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

# ============================================================
# CONFIG MODELS (loaded from YAML/git config/env/CLI)
# ============================================================

class Config(BaseConfig):
    """Application configuration.

    The branch hierarchy comes from the repository's git config
    (`branches`, `finish`, `remote`); when git config declares no
    branches, `default_branches` from the YAML defaults is used.
    """

    logger: Logger = Field(
        default_factory=Logger,
        description="Logger configuration and runtime instance"
    )
    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'spew', 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "flowline"
        ),
        description=(
            "Root directory for log files "
            "(supports {platformdirs.*} templates)"
        ),
    )
    remote: str = Field(
        default="origin",
        description="Remote used for fetch and remote branch deletion",
    )
    state_path: Path | None = Field(
        default=None,
        description=(
            "Operation state file; defaults to "
            "<git-dir>/gitflow/state/merge.json"
        ),
    )
    branches: dict[str, BranchConfig] = Field(
        default_factory=dict,
        description="Branch hierarchy from gitflow.branch.* git config",
    )
    finish: dict[str, FinishDefaults] = Field(
        default_factory=dict,
        description="Per-type finish options from gitflow.<type>.finish.*",
    )
    default_branches: dict[str, BranchConfig] = Field(
        default_factory=dict,
        description="Hierarchy used when git config declares none",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        from flowline.core.log import LevelFilteringExporter

        value = value.lower()
        if value not in LevelFilteringExporter._level_thresholds:
            raise ValueError(f"unknown log level '{value}'")
        return value

    def effective_branches(self) -> dict[str, BranchConfig]:
        """Configured branches with per-type finish options applied."""
        branches = dict(self.branches or self.default_branches)
        for name, options in self.finish.items():
            if name not in branches:
                continue
            entry = branches[name]
            finish = entry.finish.model_copy(
                update=options.model_dump(exclude_unset=True)
            )
            branches[name] = entry.model_copy(update={"finish": finish})
        return branches

    def hierarchy(self) -> BranchHierarchy:
        return BranchHierarchy.from_config(self.effective_branches())

    def start_logging(self, run_name: str) -> Logger:
        """Configure the global logger from this configuration."""
        from flowline.core.log import setup_logger

        return setup_logger(
            log_root=self.log_root,
            run_name=run_name,
            console=self.logger.console,
            file=self.logger.file,
            level=self.log_level,
        )

    def close(self):
        """Close config and the global logger singleton."""
        from flowline.core.log import _current_logger

        if _current_logger is not None and _current_logger is not self.logger:
            _current_logger.close()
        super().close()


# ============================================================
# STATE
# ============================================================

class State(BaseSettings):
    """Complete application state handed to every command.

    Sources, highest priority first: constructor arguments,
    FLOWLINE_* environment variables, the repository git config,
    then YAML files (defaults < user < project < --include).
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file=".flowline.yaml",
        env_prefix="FLOWLINE_",
        env_nested_delimiter="__",
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source priority.

        Priority order (highest to lowest):
        1. init_settings (direct instantiation arguments)
        2. Environment variables
        3. Repository git config (gitflow.*)
        4. YAML files with include support
        """
        return (
            init_settings,
            env_settings,
            GitConfigSettingsSource(settings_cls),
            YamlSettingsSource(settings_cls),
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> State:
        """Substitute {...} templates in all string and Path fields."""
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        """Substitute templates in every string/Path field of obj."""
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        elif isinstance(value, Path):
            substituted = self._substitute_string(str(value))
            return value if substituted == str(value) else Path(substituted)
        elif isinstance(value, (BaseModel, dict, list)):
            if not getattr(value.__class__, "model_config", {}).get("frozen"):
                self._substitute_recursive(value)
            return value
        else:
            return value

    def _substitute_string(self, value: str) -> str:
        """Replace {field.path} templates with actual field values.

        Examples:
            "{platformdirs.user_state_dir}/logs"
            → "/home/user/.local/state/flowline/logs"
            "{config.remote}" → "origin"
        """
        def replace_template(match):
            field_path = match.group(1)
            parts = field_path.split(".")

            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)

                if callable(obj):
                    obj = obj('flowline', appauthor=False)

                return str(obj)
            except (AttributeError, TypeError):
                # Not a valid reference, leave unchanged
                return match.group(0)

        return re.sub(r'\{([a-z._]+)\}', replace_template, value)


__all__ = ["Config", "State"]
