from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relprep.core.result import Err, Ok, Result
from relprep.output.console import ConsoleProtocol, Style
from relprep.platform.process import run_silent
from relprep.services.release.errors import ReleaseError


@dataclass(frozen=True, slots=True)
class CommandTestRunner:
    """Run the project's test command, streaming its output."""

    root: Path
    command: tuple[str, ...]
    console: ConsoleProtocol

    def run(self) -> Result[None, ReleaseError]:
        self.console.print(" ".join(self.command), Style.DIM)
        result = run_silent(list(self.command), cwd=self.root)
        if isinstance(result, Err):
            e = result.error
            return Err(
                ReleaseError(
                    kind="test_failure",
                    message=f"{' '.join(self.command)} failed (exit {e.returncode})",
                    hint=e.stderr.strip() or None,
                )
            )
        return Ok(None)
