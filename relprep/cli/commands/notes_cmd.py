from __future__ import annotations

from pathlib import Path

import typer

from relprep.cli.commands._helpers import exit_release_error
from relprep.cli.context import build_context
from relprep.core.result import Err
from relprep.output.console import RichConsole
from relprep.services.release.collector import collect_release_notes
from relprep.services.release.gh import (
    GhReleaseSource,
    ensure_gh_auth,
    ensure_gh_available,
    repo_slug,
)


def notes(
    old_version: str = typer.Option(
        ..., "--old-version", help="Tag of the previous release; PRs merged after it are listed"
    ),
    repo: str | None = typer.Option(
        None, "--repo", envvar="GITHUB_REPOSITORY", help="GitHub repository owner/name"
    ),
    root: Path | None = typer.Option(None, "--root", help="Repository root [default: cwd]"),
) -> None:
    """Print the changelog lines for PRs merged since --old-version."""
    ctx = build_context(root=root, config_path=None)

    available = ensure_gh_available()
    if isinstance(available, Err):
        exit_release_error(available.error, ctx.console)
    authed = ensure_gh_auth(root=ctx.root)
    if isinstance(authed, Err):
        exit_release_error(authed.error, ctx.console)

    slug = repo or ctx.config.repo
    if slug is None:
        detected = repo_slug(root=ctx.root)
        if isinstance(detected, Err):
            exit_release_error(detected.error, ctx.console)
        slug = detected.value

    # Progress goes to stderr so stdout can be piped into a file.
    progress = RichConsole(stderr=True)
    fragment = collect_release_notes(
        source=GhReleaseSource(ctx.root, console=progress),
        repo=slug,
        old_version=old_version,
        console=progress,
    )
    if isinstance(fragment, Err):
        exit_release_error(fragment.error, ctx.console)

    if fragment.value.text:
        typer.echo(fragment.value.text)
