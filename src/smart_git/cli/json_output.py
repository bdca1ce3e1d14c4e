"""JSON output utilities for CLI commands with machine-parseable output."""

import json
from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from enum import Enum
from functools import wraps
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from smart_git.cli.output import machine_output


class ErrorResponse(BaseModel):
    """Pydantic model for error JSON responses.

    Attributes:
        success: Always False
        error: Error message
        error_type: Error class name (e.g., "PushRejectedError")
        exit_code: Exit code for the process
    """

    model_config = ConfigDict(strict=True)

    success: bool = False
    error: str
    error_type: str
    exit_code: int = Field(default=1, ge=0, le=255)
    next_steps: list[str] = Field(default_factory=list)


class SyncResponse(BaseModel):
    """Result of `sg sync`."""

    success: bool
    conflicted: bool
    message: str
    state: str
    base_branch: str
    strategy: str
    stash_pending: bool
    next_steps: list[str]


class PushResponse(BaseModel):
    """Result of `sg push`."""

    success: bool
    branch: str
    forced: bool
    synced: bool
    message: str


class StatusResponse(BaseModel):
    """Result of `sg status`."""

    success: bool
    current_branch: str
    base_branch: str
    upstream: str | None
    ahead_of_base: int
    behind_base: int
    ahead_of_upstream: int
    behind_upstream: int
    local_base_ahead: int
    local_base_behind: int
    staged: int
    unstaged: int
    untracked: int
    conflicts: int
    suggestions: list[str]


class ConflictBlockModel(BaseModel):
    start_line: int
    end_line: int
    current_label: str
    incoming_label: str
    current: str
    incoming: str
    ancestor: str | None


class ConflictFileModel(BaseModel):
    file_path: str
    conflicts: list[ConflictBlockModel]


class ResolveResponse(BaseModel):
    """Result of `sg resolve`, or the conflict listing of `sg resolve --list`."""

    success: bool
    files: list[ConflictFileModel] = Field(default_factory=list)
    files_resolved: int = 0
    files_skipped: int = 0
    aborted: bool = False
    missing_files: list[str] = Field(default_factory=list)


def _serialize_for_json(obj: Any) -> Any:
    """Recursively serialize special types for JSON.

    Handles Path, Enum, and dataclass instances that appear in
    plain dict structures (not Pydantic models).

    For Pydantic models, use model.model_dump(mode='json') to convert
    to dict, then pass to emit_json().
    """
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return _serialize_for_json(asdict(obj))
    if isinstance(obj, dict):
        return {key: _serialize_for_json(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize_for_json(item) for item in obj]
    return obj


def emit_json(data: dict[str, Any]) -> None:
    """Output JSON data to stdout for machine consumption.

    Routes JSON through machine_output() so data lands on stdout while
    human messages stay on stderr.
    """
    serialized = _serialize_for_json(data)
    json_str = json.dumps(serialized, indent=2)
    machine_output(json_str)


def emit_json_error(
    error: str, error_type: str, exit_code: int = 1, next_steps: tuple[str, ...] = ()
) -> None:
    """Output error as JSON and exit.

    Raises:
        SystemExit: Always raises to terminate with specified exit code
    """
    error_response = ErrorResponse(
        error=error,
        error_type=error_type,
        exit_code=exit_code,
        next_steps=list(next_steps),
    )
    emit_json(error_response.model_dump(mode="json"))
    raise SystemExit(exit_code)


def json_error_boundary(func: Callable) -> Callable:
    """Decorator to catch exceptions and emit JSON errors when in JSON mode.

    Expects the command's first positional argument to be the SgContext
    (i.e. the decorator sits below @click.pass_obj). When ctx.json_mode is
    set, exceptions become one ErrorResponse document on stdout; otherwise
    they bubble up for normal error handling.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except Exception as e:
            ctx = args[0] if args else None
            if ctx is not None and getattr(ctx, "json_mode", False):
                emit_json_error(
                    str(e),
                    type(e).__name__,
                    exit_code=1,
                    next_steps=getattr(e, "next_steps", ()),
                )
            raise

    return wrapper
