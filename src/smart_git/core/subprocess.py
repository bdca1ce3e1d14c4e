"""Subprocess execution for git commands with rich error context.

Two entry points:
- run_subprocess_with_context: raises RuntimeError with operation context on failure
- run_git: never raises on non-zero exit; callers inspect the returncode (LBYL)

Both disable git's pager and terminal credential prompts so a command can never
block waiting on a TTY the engine does not own.
"""

import os
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from smart_git.cli.output import user_output

GIT_ENV_OVERRIDES = {
    "GIT_PAGER": "cat",
    "GIT_TERMINAL_PROMPT": "0",
}


def git_env() -> dict[str, str]:
    """Return the process environment with git's interactive features disabled."""
    env = dict(os.environ)
    env.update(GIT_ENV_OVERRIDES)
    return env


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    capture_output: bool = True,
    text: bool = True,
    encoding: str = "utf-8",
    check: bool = True,
    **kwargs: Any,
) -> subprocess.CompletedProcess[str]:
    """Execute subprocess with enriched error reporting.

    Wraps subprocess.run() to catch CalledProcessError and re-raise as RuntimeError
    with operation context, stderr output, and command details.

    Args:
        cmd: Command and arguments to execute
        operation_context: Human-readable description of operation
        cwd: Working directory for command execution
        capture_output: Whether to capture stdout/stderr (default: True)
        text: Whether to decode output as text (default: True)
        encoding: Text encoding to use (default: "utf-8")
        check: Whether to raise on non-zero exit (default: True)
        **kwargs: Additional arguments passed to subprocess.run()

    Returns:
        CompletedProcess instance from subprocess.run()

    Raises:
        RuntimeError: If command fails or the binary is not found
    """
    kwargs.setdefault("env", git_env())
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture_output,
            text=text,
            encoding=encoding,
            check=check,
            **kwargs,
        )

    except subprocess.CalledProcessError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Failed to {operation_context}"
        error_msg += f"\nCommand: {cmd_str}"
        error_msg += f"\nExit code: {e.returncode}"

        if e.stdout:
            stdout_stripped = str(e.stdout).strip()
            if stdout_stripped:
                error_msg += f"\nstdout: {stdout_stripped}"

        if e.stderr:
            stderr_stripped = str(e.stderr).strip()
            if stderr_stripped:
                error_msg += f"\nstderr: {stderr_stripped}"

        raise RuntimeError(error_msg) from e

    except FileNotFoundError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Command not found while trying to {operation_context}: {cmd[0]}"
        error_msg += f"\nFull command: {cmd_str}"
        raise RuntimeError(error_msg) from e


def run_git(
    args: Sequence[str],
    cwd: Path,
    *,
    stream: bool = False,
) -> subprocess.CompletedProcess[str]:
    """Run `git <args>` without raising on a non-zero exit code.

    Args:
        args: Arguments after the `git` binary name
        cwd: Working directory (the repository root)
        stream: If True, stdout goes straight to the terminal and stderr is
            echoed to the operator after capture. stderr is always captured so
            failures stay classifiable.

    Returns:
        CompletedProcess; stdout is empty when streaming

    Raises:
        RuntimeError: If the git binary is not installed
    """
    cmd = ["git", *args]
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=None if stream else subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            check=False,
            env=git_env(),
        )
    except FileNotFoundError as e:
        raise RuntimeError(f"Command not found: git\nFull command: {' '.join(cmd)}") from e

    if stream and result.stderr:
        user_output(result.stderr.rstrip("\n"))

    return subprocess.CompletedProcess(
        args=result.args,
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )
