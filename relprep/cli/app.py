from __future__ import annotations

import typer

from relprep import __version__
from relprep.cli.commands.notes_cmd import notes
from relprep.cli.commands.prepare_cmd import prepare
from relprep.cli.commands.resolve_cmd import resolve


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Prepare release pull requests for Cargo packages.",
)


app.command()(prepare)
app.command()(notes)
app.command()(resolve)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_print_version,
        is_eager=True,
    ),
) -> None:
    del version


def main() -> None:
    app()
