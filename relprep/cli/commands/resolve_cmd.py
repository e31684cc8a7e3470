from __future__ import annotations

from pathlib import Path

import typer

from relprep.cli.commands._helpers import exit_release_error
from relprep.cli.commands._metadata import MetadataMode, metadata_source
from relprep.cli.context import build_context
from relprep.core.errors import ErrorCode
from relprep.core.result import Err
from relprep.output.console import Style
from relprep.services.release.model import NoReleaseNeeded
from relprep.services.release.orchestrator import resolve_release


def resolve(
    ref: str = typer.Option(..., "--ref", envvar="GITHUB_REF", help="Ref carrying the version"),
    metadata: MetadataMode = typer.Option(
        MetadataMode.CARGO, "--metadata", help="Read the current version via cargo or Cargo.toml"
    ),
    github_output: Path | None = typer.Option(
        None,
        "--github-output",
        envvar="GITHUB_OUTPUT",
        help="Append name/old-version/new-version/release-needed as step outputs",
    ),
    root: Path | None = typer.Option(None, "--root", help="Repository root [default: cwd]"),
) -> None:
    """Show the current and target versions; fails on a malformed target."""
    ctx = build_context(root=root, config_path=None)

    resolved = resolve_release(
        metadata=metadata_source(metadata, root=ctx.root, config=ctx.config),
        ref=ref,
        console=ctx.console,
    )
    if isinstance(resolved, Err):
        exit_release_error(resolved.error, ctx.console)

    target = resolved.value
    if isinstance(target, NoReleaseNeeded):
        outputs = {
            "name": target.name,
            "old-version": target.version,
            "new-version": target.version,
            "release-needed": "false",
        }
    else:
        outputs = {
            "name": target.name,
            "old-version": target.old,
            "new-version": str(target.new),
            "release-needed": "true",
        }
        ctx.console.print(f"release needed: {target.old} -> {target.new}", Style.INFO)

    if github_output is not None:
        try:
            with github_output.open("a", encoding="utf-8") as handle:
                for key, value in outputs.items():
                    handle.write(f"{key}={value}\n")
        except OSError as e:
            ctx.console.error(f"failed to write step outputs: {e}")
            raise typer.Exit(code=int(ErrorCode.IO_ERROR))
