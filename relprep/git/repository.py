"""Git repository abstraction.

This module provides the Repository class used to record the release
commits on the current branch and push them. All operations return Result
types.

Usage:
    repo = Repository(Path("/path/to/crate"))

    match repo.commit_all("Bump version to 1.3.0"):
        case Ok(_):
            print("committed")
        case Err(e):
            print(f"commit failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relprep.core.result import Err, Ok, Result
from relprep.platform.process import ProcessError
from relprep.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

__all__ = ["GitError", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """A single git working tree.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return (self.path / ".git").exists()

    def is_clean(self) -> bool:
        """Check if the working tree has no changes.

        Returns False if status cannot be determined.
        """
        result = self._run(["status", "--porcelain"])
        match result:
            case Ok(stdout):
                return stdout.strip() == ""
            case Err(_):
                return False

    def configure_user(self, *, name: str, email: str) -> Result[None, GitError]:
        """Set the committer identity for this repository only."""
        for key, value in (("user.name", name), ("user.email", email)):
            result = self._run(["config", key, value])
            if isinstance(result, Err):
                return Err(self._error(f"config {key}", result.error, "git config failed"))
        return Ok(None)

    def diff(self) -> Result[str, GitError]:
        """Unified diff of unstaged changes to tracked files."""
        result = self._run(["diff"])
        match result:
            case Err(e):
                return Err(self._error("diff", e, "git diff failed"))
            case Ok(stdout):
                return Ok(stdout)

    def add(self, paths: list[str]) -> Result[None, GitError]:
        result = self._run(["add", "--", *paths])
        if isinstance(result, Err):
            return Err(self._error("add", result.error, "git add failed"))
        return Ok(None)

    def commit_all(self, message: str) -> Result[None, GitError]:
        """Commit every modification to tracked files (`git commit --all`)."""
        result = self._run(["commit", "--all", "-m", message])
        if isinstance(result, Err):
            return Err(self._error("commit --all", result.error, "git commit failed"))
        return Ok(None)

    def commit_paths(self, paths: list[str], message: str) -> Result[None, GitError]:
        """Stage paths (new files included) and commit them."""
        added = self.add(paths)
        if isinstance(added, Err):
            return added

        result = self._run(["commit", "-m", message])
        if isinstance(result, Err):
            return Err(self._error("commit", result.error, "git commit failed"))
        return Ok(None)

    def push(self, *, remote: str, refspec: str) -> Result[str, GitError]:
        result = self._run(["push", remote, refspec])
        match result:
            case Err(e):
                return Err(self._error(f"push {remote}", e, "push failed"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    @staticmethod
    def _error(command: str, e: ProcessError, fallback: str) -> GitError:
        # git commit reports "nothing to commit" on stdout.
        message = e.stderr.strip() or e.stdout.strip() or fallback
        return GitError(command=command, message=message, returncode=e.returncode)
