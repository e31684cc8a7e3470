from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "invalid_version_format",
    "invalid_input",
    "metadata_unavailable",
    "collector_unavailable",
    "changelog_anchor_not_found",
    "graph_failed",
    "io_failed",
    "test_failure",
    "vcs_failure",
    "gh_missing",
    "gh_auth_required",
    "pr_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Fatal error of a release preparation stage.

    Rendered verbatim by the CLI; ``hint`` usually carries the stderr of the
    failing tool.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
