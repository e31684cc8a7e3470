from __future__ import annotations

from functools import partial
from pathlib import Path

import typer

from relprep.cli.commands._helpers import exit_release_error, exit_user_error
from relprep.cli.commands._metadata import MetadataMode, metadata_source
from relprep.cli.context import CLIContext, build_context
from relprep.core.config import Config, apply_overrides, validate_for_prepare
from relprep.core.result import Err, Ok, Result
from relprep.git.repository import Repository
from relprep.output.console import Style
from relprep.services.release.checks import CommandTestRunner
from relprep.services.release.depgraph import write_dependency_graph
from relprep.services.release.errors import ReleaseError
from relprep.services.release.gh import (
    GhPullRequests,
    GhReleaseSource,
    ensure_gh_auth,
    ensure_gh_available,
    repo_slug,
)
from relprep.services.release.model import NoReleaseNeeded
from relprep.services.release.orchestrator import ReleaseOrchestrator, resolve_release
from relprep.services.release.store import FileStore


def prepare(
    ref: str = typer.Option(
        ...,
        "--ref",
        envvar="GITHUB_REF",
        help="Ref carrying the target version after its first '-', e.g. refs/heads/release-1.3.0",
    ),
    name: str | None = typer.Option(None, "--name", help="Name for automated commits"),
    email: str | None = typer.Option(None, "--email", help="Email for automated commits"),
    changelog_file: str | None = typer.Option(
        None, "--changelog-file", help="Changelog filename [default: CHANGELOG.md]"
    ),
    heading_level: str | None = typer.Option(
        None, "--heading-level", help="Markdown heading level of the changelog [default: ##]"
    ),
    dependency_graph: str | None = typer.Option(
        None,
        "--dependency-graph",
        help="Store a dependency graph in this directory (empty disables)",
    ),
    repo: str | None = typer.Option(
        None, "--repo", envvar="GITHUB_REPOSITORY", help="GitHub repository owner/name"
    ),
    base: str | None = typer.Option(None, "--base", help="Pull request base branch"),
    metadata: MetadataMode = typer.Option(
        MetadataMode.CARGO, "--metadata", help="Read the current version via cargo or Cargo.toml"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Commit locally; skip push and PR"),
    root: Path | None = typer.Option(None, "--root", help="Repository root [default: cwd]"),
    config_path: Path | None = typer.Option(None, "--config", help="Path to release-prep.toml"),
) -> None:
    """Prepare a release pull request for the version named by --ref."""
    ctx = build_context(root=root, config_path=config_path)
    config = apply_overrides(
        ctx.config,
        name=name,
        email=email,
        changelog_file=changelog_file,
        heading_level=heading_level,
        dependency_graph=dependency_graph,
        repo=repo,
        base=base,
        dry_run=dry_run or None,
    )

    resolved = resolve_release(
        metadata=metadata_source(metadata, root=ctx.root, config=config),
        ref=ref,
        console=ctx.console,
    )
    if isinstance(resolved, Err):
        exit_release_error(resolved.error, ctx.console)
    if isinstance(resolved.value, NoReleaseNeeded):
        ctx.console.print("No release needed.", Style.DIM)
        return

    valid = validate_for_prepare(config)
    if isinstance(valid, Err):
        exit_user_error(valid.error.message)

    ready = _preflight(ctx=ctx, config=config)
    if isinstance(ready, Err):
        exit_release_error(ready.error, ctx.console)

    orchestrator = build_orchestrator(ctx=ctx, config=ready.value, metadata=metadata)
    result = orchestrator.prepare(resolved.value)
    if isinstance(result, Err):
        exit_release_error(result.error, ctx.console)

    outcome = result.value
    ctx.console.newline()
    ctx.console.success(f"release {outcome.pair.new}: {outcome.pr_url}")
    for message in outcome.commits:
        ctx.console.print(f"  {message}", Style.DIM)


def _preflight(*, ctx: CLIContext, config: Config) -> Result[Config, ReleaseError]:
    """Check the checkout and gh, and fill in the repository slug if needed."""
    repo = Repository(ctx.root)
    if not repo.exists():
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"not a git repository: {ctx.root}",
                hint="Run from the crate checkout or pass --root",
            )
        )
    # commit --all would sweep these into the release commits.
    if not repo.is_clean():
        ctx.console.warning("working tree has uncommitted changes")

    ok = ensure_gh_available()
    if isinstance(ok, Err):
        return ok
    ok = ensure_gh_auth(root=ctx.root)
    if isinstance(ok, Err):
        return ok

    if config.repo is not None:
        return Ok(config)

    slug = repo_slug(root=ctx.root)
    if isinstance(slug, Err):
        return slug
    return Ok(apply_overrides(config, repo=slug.value))


def build_orchestrator(
    *, ctx: CLIContext, config: Config, metadata: MetadataMode
) -> ReleaseOrchestrator:
    store = FileStore(ctx.root)
    graph = None
    if config.dependency_graph.enabled:
        graph = partial(
            write_dependency_graph,
            root=ctx.root,
            store=store,
            directory=config.dependency_graph.dir,
            console=ctx.console,
        )

    return ReleaseOrchestrator(
        config=config,
        metadata=metadata_source(metadata, root=ctx.root, config=config),
        releases=GhReleaseSource(ctx.root, console=ctx.console),
        store=store,
        vcs=Repository(ctx.root),
        tests=CommandTestRunner(root=ctx.root, command=config.test_command, console=ctx.console),
        pull_requests=GhPullRequests(root=ctx.root, console=ctx.console, dry_run=config.dry_run),
        console=ctx.console,
        graph=graph,
    )
