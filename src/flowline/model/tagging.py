"""Tag decision for finished topic branches."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from flowline.core.errors import ConfigError
from flowline.model.branch import BranchType

DEFAULT_TAG_MESSAGE = "Tagging version {tag}"


class TagOptions(BaseModel):
    """Tag-related command-line options for one finish."""

    tag: bool = False
    notag: bool = False
    tagname: str | None = None
    message: str | None = None
    messagefile: str | None = None


class TagDecision(BaseModel):
    """Outcome of the tag policy: whether to tag, and with what."""

    model_config = ConfigDict(frozen=True)

    create: bool
    name: str | None = None
    message: str | None = None


def decide_tag(
    branch_type: BranchType,
    short_name: str,
    options: TagOptions,
    base_dir: Path | None = None,
) -> TagDecision:
    """Decide whether finishing a branch creates a tag.

    Disabling always beats enabling: --notag or the type's
    finish.notag setting suppresses the tag even when the type
    normally tags or --tag was given.

    Args:
        branch_type: Type of the branch being finished
        short_name: Branch name without the type prefix
        options: Command-line tag options
        base_dir: Directory relative message files are read from
            (defaults to the current directory)

    Returns:
        TagDecision with the tag name and annotation message

    Raises:
        ConfigError: If a message file cannot be read
    """
    if options.notag or branch_type.notag_default:
        return TagDecision(create=False)
    if not (options.tag or branch_type.tag_enabled):
        return TagDecision(create=False)

    name = options.tagname or f"{branch_type.tag_prefix}{short_name}"

    if options.message is not None:
        message = options.message
    elif options.messagefile:
        message = _read_message_file(options.messagefile, base_dir)
    elif branch_type.message_file:
        message = _read_message_file(branch_type.message_file, base_dir)
    else:
        message = DEFAULT_TAG_MESSAGE.format(tag=name)

    return TagDecision(create=True, name=name, message=message)


def _read_message_file(path: str, base_dir: Path | None) -> str:
    message_path = Path(path).expanduser()
    if base_dir is not None and not message_path.is_absolute():
        message_path = base_dir / message_path
    try:
        return message_path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ConfigError(
            f"cannot read tag message file '{message_path}': {e}"
        ) from e
