"""Tests for loading .sg/config.toml."""

from pathlib import Path

import pytest

from smart_git.cli.config import SgConfig, load_config
from smart_git.core.context import discover_repo_root
from smart_git.core.types import SyncStrategy


def _write(config_dir: Path, text: str) -> None:
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.toml").write_text(text, encoding="utf-8")


def test_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / ".sg")

    assert config == SgConfig()
    assert config.base_branch == "main"
    assert config.sync_strategy == SyncStrategy.REBASE
    assert config.remote == "origin"


def test_full_config_is_loaded(tmp_path: Path) -> None:
    _write(
        tmp_path,
        """
[git]
base_branch = "release/2.x"
sync_strategy = "merge"
remote = "upstream"
force_with_lease = true

[output]
quiet = true
json = false
""",
    )

    config = load_config(tmp_path)

    assert config.base_branch == "release/2.x"
    assert config.sync_strategy == SyncStrategy.MERGE
    assert config.remote == "upstream"
    assert config.force_with_lease is True
    assert config.quiet is True


def test_partial_config_keeps_other_defaults(tmp_path: Path) -> None:
    _write(tmp_path, '[git]\nbase_branch = "develop"\n')

    config = load_config(tmp_path)

    assert config.base_branch == "develop"
    assert config.sync_strategy == SyncStrategy.REBASE
    assert config.json is False


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('[git]\nbase_branch = "bad branch"\n', "Invalid branch name"),
        ('[git]\nsync_strategy = "squash"\n', "sync_strategy"),
        ('[git]\nforce_with_lease = "yes"\n', "force_with_lease"),
        ('[git]\nremote = ""\n', "remote"),
        ("[git\n", "Invalid config file"),
    ],
)
def test_invalid_values_raise_value_error(tmp_path: Path, text: str, message: str) -> None:
    _write(tmp_path, text)

    with pytest.raises(ValueError, match=message):
        load_config(tmp_path)


def test_discover_repo_root_walks_up(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)

    assert discover_repo_root(nested) == tmp_path.resolve()


def test_discover_repo_root_outside_repository(tmp_path: Path) -> None:
    # tmp_path itself is not inside a repository on CI runners
    if any((parent / ".git").exists() for parent in [tmp_path, *tmp_path.parents]):
        pytest.skip("temporary directory is inside a git repository")

    assert discover_repo_root(tmp_path) is None
