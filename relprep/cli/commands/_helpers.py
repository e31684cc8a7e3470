"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from relprep.core.errors import ErrorCode
from relprep.output.console import ConsoleProtocol, Style
from relprep.services.release.errors import ReleaseError

_EXIT_CODES: dict[str, ErrorCode] = {
    "invalid_version_format": ErrorCode.USER_ERROR,
    "invalid_input": ErrorCode.USER_ERROR,
    "changelog_anchor_not_found": ErrorCode.USER_ERROR,
    "gh_missing": ErrorCode.ENV_ERROR,
    "gh_auth_required": ErrorCode.ENV_ERROR,
    "metadata_unavailable": ErrorCode.ENV_ERROR,
    "test_failure": ErrorCode.CHECK_ERROR,
    "graph_failed": ErrorCode.CHECK_ERROR,
    "collector_unavailable": ErrorCode.NETWORK_ERROR,
    "pr_failed": ErrorCode.NETWORK_ERROR,
    "io_failed": ErrorCode.IO_ERROR,
    "vcs_failure": ErrorCode.VCS_ERROR,
}


def release_error_code(kind: str) -> ErrorCode:
    return _EXIT_CODES.get(kind, ErrorCode.USER_ERROR)


def exit_release_error(error: ReleaseError, console: ConsoleProtocol) -> NoReturn:
    """Print error and hint, then exit with the code mapped from its kind."""
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)
    raise typer.Exit(code=int(release_error_code(error.kind)))


def exit_user_error(message: str) -> NoReturn:
    typer.echo(f"error: {message}", err=True)
    raise typer.Exit(code=int(ErrorCode.USER_ERROR))
