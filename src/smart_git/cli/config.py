import tomllib
from dataclasses import dataclass
from pathlib import Path

from smart_git.core.git.abc import DEFAULT_BRANCH
from smart_git.core.sync_orchestrator import DEFAULT_REMOTE
from smart_git.core.types import SyncStrategy, validate_branch_name

CONFIG_DIR_NAME = ".sg"
CONFIG_FILE_NAME = "config.toml"


@dataclass(frozen=True)
class SgConfig:
    """In-memory representation of `.sg/config.toml`."""

    base_branch: str = DEFAULT_BRANCH
    sync_strategy: SyncStrategy = SyncStrategy.REBASE
    remote: str = DEFAULT_REMOTE
    force_with_lease: bool = False
    quiet: bool = False
    json: bool = False


def _require_bool(value: object, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Invalid config: '{key}' must be true or false, got {value!r}")
    return value


def load_config(config_dir: Path) -> SgConfig:
    """Load config.toml from the given directory if present; otherwise return defaults.

    Example config:
      [git]
      base_branch = "develop"
      sync_strategy = "merge"
      remote = "origin"
      force_with_lease = false

      [output]
      quiet = false
      json = false

    Raises:
        ValueError: If the file is not valid TOML or a value is invalid
    """
    cfg_path = config_dir / CONFIG_FILE_NAME
    if not cfg_path.exists():
        return SgConfig()

    try:
        data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid config file {cfg_path}: {e}") from e

    git_section = data.get("git", {})
    output_section = data.get("output", {})

    base_branch = validate_branch_name(str(git_section.get("base_branch", DEFAULT_BRANCH)))

    strategy_name = str(git_section.get("sync_strategy", SyncStrategy.REBASE.value))
    valid_strategies = [strategy.value for strategy in SyncStrategy]
    if strategy_name not in valid_strategies:
        raise ValueError(
            f"Invalid config: 'git.sync_strategy' must be one of {valid_strategies}, "
            f"got '{strategy_name}'"
        )

    remote = str(git_section.get("remote", DEFAULT_REMOTE))
    if not remote:
        raise ValueError("Invalid config: 'git.remote' cannot be empty")

    return SgConfig(
        base_branch=base_branch,
        sync_strategy=SyncStrategy(strategy_name),
        remote=remote,
        force_with_lease=_require_bool(
            git_section.get("force_with_lease", False), "git.force_with_lease"
        ),
        quiet=_require_bool(output_section.get("quiet", False), "output.quiet"),
        json=_require_bool(output_section.get("json", False), "output.json"),
    )
