from smart_git.core.git.abc import DEFAULT_BRANCH, UNMERGED_STATUS_CODES, Git
from smart_git.core.git.real import RealGit

__all__ = ["DEFAULT_BRANCH", "UNMERGED_STATUS_CODES", "Git", "RealGit"]
