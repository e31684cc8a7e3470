"""Process exit codes.

Every CLI command exits with one of these values. They are part of the
tool's contract with the CI runner and must stay stable.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for relprep commands.

    - 0: Success, including "no release needed"
    - 1: User error (bad version, bad config, changelog without anchors)
    - 2: Environment error (gh/cargo missing or unauthenticated)
    - 3: Check error (test suite or dependency graph failed)
    - 4: Network error (GitHub API unreachable, PR creation failed)
    - 5: I/O error (file read or write failed)
    - 6: VCS error (commit or push failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    CHECK_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    VCS_ERROR = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
