from __future__ import annotations

from pathlib import Path

from relprep.core.result import Err, Ok, Result
from relprep.platform.files import atomic_write_text, read_text_exact
from relprep.services.release.errors import ReleaseError


class FileStore:
    """Read and fully replace text files below a repository root.

    Paths are relative to the root and may not escape it.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def resolve(self, path: str) -> Result[Path, ReleaseError]:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"path escapes repository root: {path}",
                    hint=str(self.root),
                )
            )
        return Ok(target)

    def exists(self, path: str) -> bool:
        resolved = self.resolve(path)
        return isinstance(resolved, Ok) and resolved.value.is_file()

    def read(self, path: str) -> Result[str, ReleaseError]:
        resolved = self.resolve(path)
        if isinstance(resolved, Err):
            return resolved

        try:
            return Ok(read_text_exact(resolved.value))
        except (OSError, UnicodeDecodeError) as e:
            return Err(
                ReleaseError(
                    kind="io_failed",
                    message=f"failed to read {path}: {e}",
                    hint=str(resolved.value),
                )
            )

    def write(self, path: str, text: str) -> Result[None, ReleaseError]:
        resolved = self.resolve(path)
        if isinstance(resolved, Err):
            return resolved

        try:
            atomic_write_text(resolved.value, text)
        except OSError as e:
            return Err(
                ReleaseError(
                    kind="io_failed",
                    message=f"failed to write {path}: {e}",
                    hint=str(resolved.value),
                )
            )
        return Ok(None)
