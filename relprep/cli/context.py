from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from relprep.core.config import CONFIG_FILENAME, Config, load_config_or_default
from relprep.core.errors import ErrorCode
from relprep.core.result import Err
from relprep.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


def build_context(*, root: Path | None, config_path: Path | None) -> CLIContext:
    """Resolve the repository root and load its configuration.

    ``config_path`` defaults to ``<root>/release-prep.toml``; a missing
    default file means defaults, a missing explicit file is an error.
    """
    try:
        resolved = (root or Path.cwd()).expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --root: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if not resolved.is_dir():
        typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if config_path is not None and not config_path.exists():
        typer.echo(f"error: config file not found: {config_path}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    config_result = load_config_or_default(config_path or resolved / CONFIG_FILENAME)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(root=resolved, config=config_result.value, console=RichConsole())
