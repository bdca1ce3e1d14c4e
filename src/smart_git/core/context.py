"""Application context with dependency injection."""

from dataclasses import dataclass
from pathlib import Path

from smart_git.cli.config import CONFIG_DIR_NAME, SgConfig, load_config
from smart_git.core.git.abc import Git
from smart_git.core.git.real import RealGit
from smart_git.core.prompter import ClickPrompter, Prompter
from smart_git.core.user_feedback import UserFeedback, create_feedback


def discover_repo_root(cwd: Path) -> Path | None:
    """Walk up from cwd to the first directory containing `.git` (a directory or a worktree file)."""
    cur = cwd.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / ".git").exists():
            return parent
    return None


@dataclass(frozen=True)
class SgContext:
    """Immutable context holding all dependencies for sg commands.

    Created at the CLI entry point and threaded through commands with
    @click.pass_obj. repo_root is None outside a git repository; commands
    that need one check it with Ensure.
    """

    git: Git
    feedback: UserFeedback
    prompter: Prompter
    cwd: Path
    repo_root: Path | None
    config: SgConfig
    quiet: bool
    json_mode: bool

    @staticmethod
    def for_test(
        git: Git | None = None,
        feedback: UserFeedback | None = None,
        prompter: Prompter | None = None,
        cwd: Path | None = None,
        repo_root: Path | None = None,
        config: SgConfig | None = None,
        quiet: bool = False,
        json_mode: bool = False,
    ) -> "SgContext":
        """Create test context with fakes for every unspecified dependency.

        Example:
            >>> git = FakeGit(current_branch="feature")
            >>> ctx = SgContext.for_test(git=git)
            >>> result = CliRunner().invoke(cli, ["sync"], obj=ctx)
        """
        from tests.fakes.prompter import FakePrompter
        from tests.fakes.user_feedback import FakeUserFeedback

        from smart_git.core.git.fake import FakeGit

        if git is None:
            git = FakeGit()

        if feedback is None:
            feedback = FakeUserFeedback()

        if prompter is None:
            prompter = FakePrompter()

        if cwd is None:
            cwd = Path("/test/repo")

        if repo_root is None:
            repo_root = cwd

        if config is None:
            config = SgConfig()

        return SgContext(
            git=git,
            feedback=feedback,
            prompter=prompter,
            cwd=cwd,
            repo_root=repo_root,
            config=config,
            quiet=quiet,
            json_mode=json_mode,
        )


def create_context(*, cwd: Path, quiet: bool, json_mode: bool) -> SgContext:
    """Create production context with real implementations.

    Flags given on the command line win over `.sg/config.toml`.

    Raises:
        ValueError: If the config file is invalid
    """
    repo_root = discover_repo_root(cwd)
    if repo_root is not None:
        config = load_config(repo_root / CONFIG_DIR_NAME)
    else:
        config = SgConfig()

    quiet = quiet or config.quiet
    json_mode = json_mode or config.json

    return SgContext(
        git=RealGit(),
        feedback=create_feedback(quiet=quiet, json_mode=json_mode),
        prompter=ClickPrompter(),
        cwd=cwd,
        repo_root=repo_root,
        config=config,
        quiet=quiet,
        json_mode=json_mode,
    )
