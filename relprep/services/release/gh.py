from __future__ import annotations

import json
import shutil
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from time import sleep

from relprep.core.result import Err, Ok, Result
from relprep.core.structured import as_obj_list, as_str_dict, get_int, get_str, get_table
from relprep.output.console import ConsoleProtocol, Style
from relprep.platform.process import ProcessError
from relprep.platform.process import run as run_process
from relprep.services.release.errors import ReleaseError, ReleaseErrorKind
from relprep.services.release.model import PullRequestRecord, ReleaseRecord
from relprep.services.release.timeouts import (
    GH_PAGE_SIZE,
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_SEARCH_RESULT_LIMIT,
    GH_TIMEOUT_SECONDS,
)


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def run_gh_read(
    *,
    root: Path,
    cmd: list[str],
    kind: ReleaseErrorKind,
    message: str,
    hint: str | None = None,
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ReleaseError]:
    """Run a read-only gh command, retrying transient network failures."""
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=root, timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        return Err(ReleaseError(kind=kind, message=message, hint=error.stderr.strip() or hint))

    return Err(ReleaseError(kind=kind, message=message, hint=hint))


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def ensure_gh_auth(*, root: Path) -> Result[None, ReleaseError]:
    result = run_process(["gh", "auth", "status"], cwd=root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="gh_auth_required",
                message="gh auth required",
                hint="Run: gh auth login (or set GH_TOKEN in CI)",
            )
        )
    return Ok(None)


def gh_api_json(
    *,
    root: Path,
    endpoint: str,
    params: dict[str, str] | None = None,
) -> Result[object, ReleaseError]:
    """GET endpoint through `gh api`, with params sent as query fields."""
    cmd = ["gh", "api", "-X", "GET", endpoint]
    for key, value in (params or {}).items():
        cmd.extend(["-f", f"{key}={value}"])

    result = run_gh_read(
        root=root,
        cmd=cmd,
        kind="collector_unavailable",
        message=f"gh api failed: {endpoint}",
        hint=endpoint,
    )
    if isinstance(result, Err):
        return result

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="collector_unavailable",
                message=f"gh api returned invalid JSON: {e}",
                hint=endpoint,
            )
        )
    return Ok(obj)


def repo_slug(*, root: Path) -> Result[str, ReleaseError]:
    """``owner/name`` of the repository checked out at root."""
    result = run_gh_read(
        root=root,
        cmd=["gh", "repo", "view", "--json", "nameWithOwner"],
        kind="invalid_input",
        message="failed to detect GitHub repository",
        hint="Pass --repo owner/name or set GITHUB_REPOSITORY",
    )
    if isinstance(result, Err):
        return result

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind="invalid_input", message=f"invalid JSON from gh repo view: {e}"))

    data = as_str_dict(obj)
    slug = get_str(data, "nameWithOwner") if data is not None else None
    if slug is None:
        return Err(ReleaseError(kind="invalid_input", message="missing nameWithOwner"))
    return Ok(slug)


def _iter_pages(
    *,
    root: Path,
    endpoint: str,
    params: dict[str, str],
    items_key: str | None,
    limit: int | None = None,
    console: ConsoleProtocol | None = None,
) -> Iterator[Result[list[object], ReleaseError]]:
    """Yield one page of raw items per request until the listing is exhausted.

    Stops after the first error. Pages are fetched only as the consumer
    advances, so a caller that stops early saves the remaining requests.
    With ``limit``, no page past the first ``limit`` items is requested and
    the console is warned when ``total_count`` says more exist.
    """
    page = 1
    seen = 0
    while True:
        obj = gh_api_json(
            root=root,
            endpoint=endpoint,
            params={**params, "per_page": str(GH_PAGE_SIZE), "page": str(page)},
        )
        if isinstance(obj, Err):
            yield obj
            return

        total: int | None = None
        if items_key is None:
            raw = as_obj_list(obj.value)
        else:
            data = as_str_dict(obj.value)
            raw = as_obj_list(data.get(items_key)) if data is not None else None
            total = get_int(data, "total_count") if data is not None else None

        if raw is None:
            yield Err(
                ReleaseError(
                    kind="collector_unavailable",
                    message=f"unexpected payload from {endpoint}",
                    hint=f"page {page}",
                )
            )
            return

        truncated = limit is not None and total is not None and total > limit
        if page == 1 and truncated and console is not None:
            console.warning(
                f"{endpoint}: {total} results, only the first {limit} are reachable through search"
            )

        yield Ok(raw)

        seen += len(raw)
        if len(raw) < GH_PAGE_SIZE or (total is not None and seen >= total):
            return
        if limit is not None and seen >= limit:
            return
        page += 1


def iter_releases(*, root: Path, repo: str) -> Iterator[Result[ReleaseRecord, ReleaseError]]:
    """Releases of repo, newest first, as GitHub lists them."""
    for page in _iter_pages(root=root, endpoint=f"repos/{repo}/releases", params={}, items_key=None):
        if isinstance(page, Err):
            yield page
            return
        for item in page.value:
            d = as_str_dict(item)
            if d is None:
                continue
            tag = get_str(d, "tag_name")
            if tag is None:
                continue
            yield Ok(ReleaseRecord(tag_name=tag, published_at=get_str(d, "published_at")))


def merged_pull_request_query(*, repo: str, cutoff: str) -> str:
    return " ".join([f"repo:{repo}", "is:pr", "is:merged", f"merged:>{cutoff}"])


def iter_merged_pull_requests(
    *,
    root: Path,
    repo: str,
    after: str,
    console: ConsoleProtocol | None = None,
) -> Iterator[Result[PullRequestRecord, ReleaseError]]:
    """Pull requests merged strictly after ``after``, oldest created first.

    GitHub search serves at most GH_SEARCH_RESULT_LIMIT results; past that
    the listing is truncated with a warning on ``console``.
    """
    params = {
        "q": merged_pull_request_query(repo=repo, cutoff=after),
        "sort": "created",
        "order": "asc",
    }
    pages = _iter_pages(
        root=root,
        endpoint="search/issues",
        params=params,
        items_key="items",
        limit=GH_SEARCH_RESULT_LIMIT,
        console=console,
    )
    for page in pages:
        if isinstance(page, Err):
            yield page
            return
        for item in page.value:
            record = _pull_request_record(item)
            if record is not None:
                yield Ok(record)


def _pull_request_record(item: object) -> PullRequestRecord | None:
    d = as_str_dict(item)
    if d is None:
        return None

    number = get_int(d, "number")
    url = get_str(d, "html_url")
    created_at = get_str(d, "created_at")
    if number is None or url is None or created_at is None:
        return None

    # One changelog line per PR: join wrapped title lines, keep other spacing.
    title_obj = d.get("title")
    title = " ".join(title_obj.splitlines()) if isinstance(title_obj, str) else ""

    merged_at: str | None = None
    pr_tbl = get_table(d, "pull_request")
    if pr_tbl is not None:
        merged_at = get_str(pr_tbl, "merged_at")

    return PullRequestRecord(
        number=number,
        title=title,
        url=url,
        merged_at=merged_at or get_str(d, "closed_at"),
        created_at=created_at,
    )


def create_pull_request(
    *,
    root: Path,
    repo: str,
    base_branch: str,
    branch: str,
    title: str,
    body: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[str, ReleaseError]:
    cmd = [
        "gh",
        "pr",
        "create",
        "--repo",
        repo,
        "--base",
        base_branch,
        "--head",
        branch,
        "--title",
        title,
        "--body",
        body,
    ]

    console.print(f"gh pr create --repo {repo} --base {base_branch} --head {branch}", Style.DIM)
    if dry_run:
        return Ok("(dry-run)")

    # Not retried: a timed-out create may still have opened the PR.
    result = run_process(cmd, cwd=root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="pr_failed",
                message=f"failed to create pull request for {branch}",
                hint=result.error.stderr.strip() or None,
            )
        )

    url = result.value.strip().splitlines()[-1] if result.value.strip() else ""
    if not url.startswith("https://"):
        return Err(
            ReleaseError(
                kind="pr_failed",
                message="unexpected gh pr create output",
                hint=result.value.strip() or None,
            )
        )
    return Ok(url)


@dataclass(frozen=True, slots=True)
class GhReleaseSource:
    """Release listing and merged-PR search bound to a checkout."""

    root: Path
    console: ConsoleProtocol | None = None

    def list_releases(self, repo: str) -> Iterator[Result[ReleaseRecord, ReleaseError]]:
        return iter_releases(root=self.root, repo=repo)

    def search_merged(
        self, repo: str, after: str
    ) -> Iterator[Result[PullRequestRecord, ReleaseError]]:
        return iter_merged_pull_requests(
            root=self.root, repo=repo, after=after, console=self.console
        )


@dataclass(frozen=True, slots=True)
class GhPullRequests:
    root: Path
    console: ConsoleProtocol
    dry_run: bool = False

    def create_pull_request(
        self, *, repo: str, head: str, base: str, title: str, body: str
    ) -> Result[str, ReleaseError]:
        return create_pull_request(
            root=self.root,
            repo=repo,
            base_branch=base,
            branch=head,
            title=title,
            body=body,
            console=self.console,
            dry_run=self.dry_run,
        )
