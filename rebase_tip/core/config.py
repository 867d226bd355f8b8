"""Typed configuration loading.

Settings come from two places, in increasing priority:

1. An optional TOML file (``$REBASE_TIP_CONFIG``, else
   ``$XDG_CONFIG_HOME/rebase-tip/config.toml``).
2. Environment variables, including the ones the workflow itself writes
   when it queues a resume (``TIP_REBASE_CMD``, ``TIP_COMMAND_ARGS``).
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_raw_str, get_str, get_table, parse_bool

__all__ = [
    "Config",
    "ConfigError",
    "HelperOptions",
    "TaskRunner",
    "default_config_path",
    "load_config",
    "resolve_config",
    # Environment variable names
    "ENV_RESUME_STAGE",
    "ENV_COMMAND_ARGS",
    "ENV_MR_REPO",
    "ENV_MR_ACTION",
    "ENV_BMP_NO_NORMALIZE",
    "ENV_BMP_RESTRICT_LOCAL",
    "ENV_TAG_PREFIX",
    "ENV_LOG_LEVEL",
    "ENV_CONFIG_PATH",
]

ENV_RESUME_STAGE = "TIP_REBASE_CMD"
ENV_COMMAND_ARGS = "TIP_COMMAND_ARGS"
ENV_MR_REPO = "MR_REPO"
ENV_MR_ACTION = "MR_ACTION"
ENV_BMP_NO_NORMALIZE = "BMP_NO_NORMALIZE"
ENV_BMP_RESTRICT_LOCAL = "BMP_RESTRICT_LOCAL"
ENV_TAG_PREFIX = "GITNUBS_PREFIX"
ENV_LOG_LEVEL = "TIP_LOG_LEVEL"
ENV_CONFIG_PATH = "REBASE_TIP_CONFIG"

DEFAULT_TAG_PREFIX = "v"
DEFAULT_TIP_BRANCH_PREFIX = "tip/"
DEFAULT_STAGE_LABEL = "alpha"
DEFAULT_BREADCRUMB_PREFIX = "tip-merge-base/"
DEFAULT_LOG_LEVEL = "info"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the config file cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class TaskRunner:
    """External task-runner (myrepos) that wraps the background re-invocation."""

    repo: str | None
    action: str


@dataclass(frozen=True, slots=True)
class HelperOptions:
    """Options forwarded to the bump-version-tag helper when creating a tag."""

    # The synthesized tags are not strict SemVer, so skip normalization.
    no_normalize: bool = True
    # Keep the tag local; never push it to a remote.
    restrict_local: bool = True

    def as_env(self) -> dict[str, str]:
        return {
            ENV_BMP_NO_NORMALIZE: "true" if self.no_normalize else "false",
            ENV_BMP_RESTRICT_LOCAL: "true" if self.restrict_local else "false",
        }


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    tag_prefix: str = DEFAULT_TAG_PREFIX
    tip_branch_prefix: str = DEFAULT_TIP_BRANCH_PREFIX
    stage_label: str = DEFAULT_STAGE_LABEL
    breadcrumb_prefix: str = DEFAULT_BREADCRUMB_PREFIX
    log_level: str = DEFAULT_LOG_LEVEL
    resume_stage: str | None = None
    command_args: tuple[str, ...] | None = None
    task_runner: TaskRunner | None = None
    helper: HelperOptions = field(default_factory=HelperOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from parsed TOML.

        Both a flat layout and a ``[rebase-tip]`` table are accepted.
        """
        table: StrDict = get_table(data, "rebase-tip") or dict(data)
        tag_prefix = get_raw_str(table, "tag_prefix")
        tip_prefix = get_raw_str(table, "tip_branch_prefix")
        breadcrumb = get_raw_str(table, "breadcrumb_prefix")

        return cls(
            tag_prefix=DEFAULT_TAG_PREFIX if tag_prefix is None else tag_prefix,
            tip_branch_prefix=DEFAULT_TIP_BRANCH_PREFIX if tip_prefix is None else tip_prefix,
            stage_label=get_str(table, "stage_label") or DEFAULT_STAGE_LABEL,
            breadcrumb_prefix=DEFAULT_BREADCRUMB_PREFIX if breadcrumb is None else breadcrumb,
            log_level=get_str(table, "log_level") or DEFAULT_LOG_LEVEL,
        )

    def with_environ(self, environ: Mapping[str, str]) -> Config:
        """Overlay environment variables on top of this config."""
        tag_prefix = environ.get(ENV_TAG_PREFIX)
        log_level = (environ.get(ENV_LOG_LEVEL) or "").strip()
        resume_stage = (environ.get(ENV_RESUME_STAGE) or "").strip()

        command_args: tuple[str, ...] | None = None
        raw_args = environ.get(ENV_COMMAND_ARGS)
        if raw_args is not None and raw_args.strip():
            command_args = tuple(shlex.split(raw_args))

        task_runner: TaskRunner | None = None
        action = (environ.get(ENV_MR_ACTION) or "").strip()
        if action:
            task_runner = TaskRunner(
                repo=(environ.get(ENV_MR_REPO) or "").strip() or None,
                action=action,
            )

        no_normalize = parse_bool(environ.get(ENV_BMP_NO_NORMALIZE))
        restrict_local = parse_bool(environ.get(ENV_BMP_RESTRICT_LOCAL))

        return replace(
            self,
            tag_prefix=self.tag_prefix if tag_prefix is None else tag_prefix,
            log_level=log_level or self.log_level,
            resume_stage=resume_stage or None,
            command_args=command_args,
            task_runner=task_runner,
            helper=HelperOptions(
                no_normalize=self.helper.no_normalize if no_normalize is None else no_normalize,
                restrict_local=(
                    self.helper.restrict_local if restrict_local is None else restrict_local
                ),
            ),
        )


def default_config_path(environ: Mapping[str, str]) -> Path:
    explicit = environ.get(ENV_CONFIG_PATH)
    if explicit:
        return Path(explicit).expanduser()

    xdg = environ.get("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / "rebase-tip" / "config.toml"


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to the config.toml file

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return Ok(Config.from_dict(result.value))


def resolve_config(environ: Mapping[str, str] | None = None) -> Result[Config, ConfigError]:
    """Build the effective Config: file (if any) overlaid with the environment.

    A missing config file is not an error; a malformed one is.
    """
    env = os.environ if environ is None else environ
    path = default_config_path(env)

    base = Config()
    if path.is_file():
        loaded = load_config(path)
        if isinstance(loaded, Err):
            return loaded
        base = loaded.value

    return Ok(base.with_environ(env))
