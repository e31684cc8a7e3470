"""Collect merged pull requests since the previous release into changelog lines."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from typing import Protocol

from relprep.core.result import Err, Ok, Result
from relprep.output.console import ConsoleProtocol, Style
from relprep.services.release.errors import ReleaseError
from relprep.services.release.model import (
    EPOCH_CUTOFF,
    ChangelogFragment,
    PullRequestRecord,
    ReleaseRecord,
)


class ReleaseSource(Protocol):
    """Hosted-API reads needed to build release notes."""

    def list_releases(self, repo: str) -> Iterator[Result[ReleaseRecord, ReleaseError]]: ...

    def search_merged(
        self, repo: str, after: str
    ) -> Iterator[Result[PullRequestRecord, ReleaseError]]: ...


def resolve_cutoff(
    releases: Iterable[Result[ReleaseRecord, ReleaseError]],
    old_version: str,
) -> Result[str, ReleaseError]:
    """Publish time of the release tagged ``old_version``, else the epoch.

    Stops consuming ``releases`` at the first match. Drafts have no publish
    time and are skipped.
    """
    for item in releases:
        if isinstance(item, Err):
            return item
        release = item.value
        if release.tag_name == old_version and release.published_at is not None:
            return Ok(release.published_at)
    return Ok(EPOCH_CUTOFF)


def _created_key(record: PullRequestRecord) -> datetime:
    return datetime.fromisoformat(record.created_at)


def sort_records(records: Iterable[PullRequestRecord]) -> list[PullRequestRecord]:
    """Ascending by creation time; ties keep the order they were found in."""
    return sorted(records, key=_created_key)


def render_line(record: PullRequestRecord) -> str:
    return f"* [#{record.number}]({record.url}): {record.title}"


def render_fragment(records: Iterable[PullRequestRecord]) -> ChangelogFragment:
    return ChangelogFragment(lines=tuple(render_line(r) for r in records))


def collect_release_notes(
    *,
    source: ReleaseSource,
    repo: str,
    old_version: str,
    console: ConsoleProtocol,
) -> Result[ChangelogFragment, ReleaseError]:
    """Render every PR merged since the release of ``old_version``.

    The search is drained completely before rendering; any failure along
    the way discards what was fetched.
    """
    cutoff = resolve_cutoff(source.list_releases(repo), old_version)
    if isinstance(cutoff, Err):
        return Err(_as_unavailable(cutoff.error))
    console.print(f"Finding merged PRs after {cutoff.value}", Style.DIM)

    records: list[PullRequestRecord] = []
    for item in source.search_merged(repo, cutoff.value):
        if isinstance(item, Err):
            return Err(_as_unavailable(item.error))
        records.append(item.value)
    console.print(f"Found {len(records)} merged PRs", Style.DIM)

    return Ok(render_fragment(sort_records(records)))


def _as_unavailable(error: ReleaseError) -> ReleaseError:
    if error.kind == "collector_unavailable":
        return error
    return ReleaseError(kind="collector_unavailable", message=error.message, hint=error.hint)
