"""Render the crate's dependency graph as an optimized SVG.

Equivalent to::

    cargo depgraph | dot -Tsvg -Nfontname=monospace \
      | sed 's/stroke="transparent"/stroke="none"/' \
      | svgcleaner --indent 0 --stdout -

The tools are installed by the caller (``cargo install cargo-depgraph
svgcleaner`` plus Graphviz).
"""

from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath

from relprep.core.result import Err, Ok, Result
from relprep.output.console import ConsoleProtocol, Style
from relprep.platform.process import run as run_process
from relprep.services.release.errors import ReleaseError
from relprep.services.release.model import Version
from relprep.services.release.store import FileStore
from relprep.services.release.timeouts import TOOL_TIMEOUT_SECONDS

_REQUIRED_TOOLS = ("cargo", "dot", "svgcleaner")


def graph_path(*, directory: str, name: str, version: Version) -> str:
    return str(PurePosixPath(directory) / f"{name}-{version}.svg")


def ensure_graph_tools() -> Result[None, ReleaseError]:
    missing = [tool for tool in _REQUIRED_TOOLS if shutil.which(tool) is None]
    if missing:
        return Err(
            ReleaseError(
                kind="graph_failed",
                message=f"dependency graph tools missing: {', '.join(missing)}",
                hint="Install Graphviz, then: cargo install cargo-depgraph svgcleaner",
            )
        )
    return Ok(None)


def render_dependency_graph(*, root: Path, console: ConsoleProtocol) -> Result[str, ReleaseError]:
    """Return the cleaned SVG text for the crate at root."""
    steps: list[list[str]] = [
        ["cargo", "depgraph"],
        ["dot", "-Tsvg", "-Nfontname=monospace"],
        ["svgcleaner", "--indent", "0", "--stdout", "-"],
    ]

    data: str | None = None
    for cmd in steps:
        console.print(" ".join(cmd), Style.DIM)
        result = run_process(cmd, cwd=root, timeout=TOOL_TIMEOUT_SECONDS, input=data)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="graph_failed",
                    message=f"{cmd[0]} failed while rendering dependency graph",
                    hint=result.error.stderr.strip() or None,
                )
            )
        data = result.value
        if cmd[0] == "dot":
            data = data.replace('stroke="transparent"', 'stroke="none"')

    return Ok(data or "")


def write_dependency_graph(
    *,
    root: Path,
    store: FileStore,
    directory: str,
    name: str,
    version: Version,
    console: ConsoleProtocol,
) -> Result[str, ReleaseError]:
    """Render and store ``<directory>/<name>-<version>.svg``; returns its path."""
    tools = ensure_graph_tools()
    if isinstance(tools, Err):
        return tools

    svg = render_dependency_graph(root=root, console=console)
    if isinstance(svg, Err):
        return svg

    path = graph_path(directory=directory, name=name, version=version)
    written = store.write(path, svg.value)
    if isinstance(written, Err):
        return written
    return Ok(path)
