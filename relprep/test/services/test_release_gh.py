from __future__ import annotations

import json
from pathlib import Path

import pytest

from relprep.core.result import Err, Ok, Result
from relprep.output.console import MockConsole
from relprep.platform.process import ProcessError
from relprep.services.release import gh as gh_mod
from relprep.services.release.errors import ReleaseError
from relprep.services.release.model import PullRequestRecord, ReleaseRecord


def _err(*, stderr: str, returncode: int = 1) -> Err[ProcessError]:
    return Err(
        ProcessError(
            command=("gh", "api", "repos/o/r/releases"),
            returncode=returncode,
            stdout="",
            stderr=stderr,
        )
    )


def _no_sleep(seconds: float) -> None:
    del seconds


class FakeGh:
    def __init__(self, responses: list[Result[str, ProcessError]]) -> None:
        self.responses = responses
        self.calls: list[list[str]] = []

    def __call__(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del cwd, timeout
        self.calls.append(cmd)
        return self.responses.pop(0)


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gh_mod, "sleep", _no_sleep)


def _install(monkeypatch: pytest.MonkeyPatch, responses: list[Result[str, ProcessError]]) -> FakeGh:
    fake = FakeGh(responses)
    monkeypatch.setattr(gh_mod, "run_process", fake)
    return fake


def _param(cmd: list[str], key: str) -> str | None:
    for i, arg in enumerate(cmd):
        if arg == "-f" and cmd[i + 1].startswith(f"{key}="):
            return cmd[i + 1].split("=", 1)[1]
    return None


class TestGhApiJson:
    def test_retries_transient_error(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, no_sleep: None
    ) -> None:
        fake = _install(monkeypatch, [_err(stderr="HTTP 503 Service Unavailable"), Ok('{"ok": true}')])

        result = gh_mod.gh_api_json(root=tmp_path, endpoint="repos/o/r")

        assert result == Ok({"ok": True})
        assert len(fake.calls) == 2

    def test_does_not_retry_non_transient(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, no_sleep: None
    ) -> None:
        fake = _install(monkeypatch, [_err(stderr="HTTP 404 Not Found")])

        result = gh_mod.gh_api_json(root=tmp_path, endpoint="repos/o/r")

        assert isinstance(result, Err)
        assert result.error.kind == "collector_unavailable"
        assert result.error.hint == "HTTP 404 Not Found"
        assert len(fake.calls) == 1

    def test_gives_up_after_retry_budget(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, no_sleep: None
    ) -> None:
        fake = _install(monkeypatch, [_err(stderr="HTTP 502 Bad Gateway")] * 3)

        result = gh_mod.gh_api_json(root=tmp_path, endpoint="repos/o/r")

        assert isinstance(result, Err)
        assert len(fake.calls) == 3

    def test_params_become_query_fields(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _install(monkeypatch, [Ok("[]")])

        gh_mod.gh_api_json(root=tmp_path, endpoint="search/issues", params={"q": "repo:o/r is:pr"})

        assert fake.calls[0][:5] == ["gh", "api", "-X", "GET", "search/issues"]
        assert _param(fake.calls[0], "q") == "repo:o/r is:pr"

    def test_invalid_json(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        _install(monkeypatch, [Ok("<html>")])

        result = gh_mod.gh_api_json(root=tmp_path, endpoint="repos/o/r")

        assert isinstance(result, Err)
        assert "invalid JSON" in result.error.message


class TestIterReleases:
    def test_stops_after_short_page(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        page = [
            {"tag_name": "1.2.4", "published_at": "2024-03-01T00:00:00Z"},
            {"tag_name": "1.2.3", "published_at": None},
            {"name": "no tag"},
        ]
        fake = _install(monkeypatch, [Ok(json.dumps(page))])

        releases = list(gh_mod.iter_releases(root=tmp_path, repo="o/r"))

        assert releases == [
            Ok(ReleaseRecord("1.2.4", "2024-03-01T00:00:00Z")),
            Ok(ReleaseRecord("1.2.3", None)),
        ]
        assert len(fake.calls) == 1
        assert fake.calls[0][4] == "repos/o/r/releases"

    def test_fetches_next_page_lazily(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setattr(gh_mod, "GH_PAGE_SIZE", 2)
        fake = _install(
            monkeypatch,
            [
                Ok(json.dumps([{"tag_name": "3.0.0"}, {"tag_name": "2.0.0"}])),
                Ok(json.dumps([{"tag_name": "1.0.0"}])),
            ],
        )

        it = gh_mod.iter_releases(root=tmp_path, repo="o/r")
        assert next(it) == Ok(ReleaseRecord("3.0.0", None))
        assert len(fake.calls) == 1

        rest = list(it)
        assert [r.value.tag_name for r in rest if isinstance(r, Ok)] == ["2.0.0", "1.0.0"]
        assert [_param(c, "page") for c in fake.calls] == ["1", "2"]

    def test_error_ends_iteration(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, no_sleep: None
    ) -> None:
        _install(monkeypatch, [_err(stderr="HTTP 401 Bad credentials")])

        releases = list(gh_mod.iter_releases(root=tmp_path, repo="o/r"))

        assert len(releases) == 1
        assert isinstance(releases[0], Err)


class TestIterMergedPullRequests:
    def test_query_and_records(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        payload = {
            "total_count": 2,
            "items": [
                {
                    "number": 12,
                    "title": "Fix\n  parser",
                    "html_url": "https://github.com/o/r/pull/12",
                    "created_at": "2024-01-10T00:00:00Z",
                    "closed_at": "2024-01-11T00:00:00Z",
                    "pull_request": {"merged_at": "2024-01-11T00:00:00Z"},
                },
                {
                    "number": 15,
                    "title": "Add feature",
                    "html_url": "https://github.com/o/r/pull/15",
                    "created_at": "2024-01-20T00:00:00Z",
                    "closed_at": "2024-01-21T00:00:00Z",
                },
            ],
        }
        fake = _install(monkeypatch, [Ok(json.dumps(payload))])

        records = list(
            gh_mod.iter_merged_pull_requests(root=tmp_path, repo="o/r", after="2024-01-01T00:00:00Z")
        )

        assert records == [
            Ok(
                PullRequestRecord(
                    number=12,
                    title="Fix   parser",
                    url="https://github.com/o/r/pull/12",
                    merged_at="2024-01-11T00:00:00Z",
                    created_at="2024-01-10T00:00:00Z",
                )
            ),
            Ok(
                PullRequestRecord(
                    number=15,
                    title="Add feature",
                    url="https://github.com/o/r/pull/15",
                    merged_at="2024-01-21T00:00:00Z",
                    created_at="2024-01-20T00:00:00Z",
                )
            ),
        ]
        cmd = fake.calls[0]
        assert cmd[4] == "search/issues"
        assert _param(cmd, "q") == "repo:o/r is:pr is:merged merged:>2024-01-01T00:00:00Z"
        assert _param(cmd, "sort") == "created"
        assert _param(cmd, "order") == "asc"

    def test_total_count_stops_full_page(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(gh_mod, "GH_PAGE_SIZE", 1)
        item = {
            "number": 1,
            "title": "x",
            "html_url": "https://github.com/o/r/pull/1",
            "created_at": "2024-01-10T00:00:00Z",
        }
        fake = _install(monkeypatch, [Ok(json.dumps({"total_count": 1, "items": [item]}))])

        records = list(gh_mod.iter_merged_pull_requests(root=tmp_path, repo="o/r", after="1970-01-01"))

        assert len(records) == 1
        assert len(fake.calls) == 1

    def test_title_spacing_is_kept(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        item = {
            "number": 7,
            "title": "Use  `a  b`\r\nin docs",
            "html_url": "https://github.com/o/r/pull/7",
            "created_at": "2024-01-10T00:00:00Z",
        }
        _install(monkeypatch, [Ok(json.dumps({"total_count": 1, "items": [item]}))])

        records = list(gh_mod.iter_merged_pull_requests(root=tmp_path, repo="o/r", after="1970-01-01"))

        assert isinstance(records[0], Ok)
        assert records[0].value.title == "Use  `a  b` in docs"

    def test_stops_at_search_result_limit(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(gh_mod, "GH_PAGE_SIZE", 2)
        monkeypatch.setattr(gh_mod, "GH_SEARCH_RESULT_LIMIT", 4)

        def page(first: int) -> Ok[str]:
            items = [
                {
                    "number": n,
                    "title": f"PR {n}",
                    "html_url": f"https://github.com/o/r/pull/{n}",
                    "created_at": "2024-01-10T00:00:00Z",
                }
                for n in (first, first + 1)
            ]
            return Ok(json.dumps({"total_count": 6, "items": items}))

        # GitHub answers 422 for pages past the search window.
        past_window = Err(
            ProcessError(
                command=("gh", "api", "search/issues"),
                returncode=1,
                stdout="",
                stderr="gh: Cannot access beyond the first 1000 results (HTTP 422)",
            )
        )
        fake = _install(monkeypatch, [page(1), page(3), past_window])
        console = MockConsole()

        records = list(
            gh_mod.iter_merged_pull_requests(
                root=tmp_path, repo="o/r", after="1970-01-01", console=console
            )
        )

        assert all(isinstance(r, Ok) for r in records)
        assert [r.value.number for r in records if isinstance(r, Ok)] == [1, 2, 3, 4]
        assert len(fake.calls) == 2
        assert console.find("6 results, only the first 4")

    def test_full_search_window(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        def page(number: int) -> Ok[str]:
            items = [
                {
                    "number": n,
                    "title": f"PR {n}",
                    "html_url": f"https://github.com/o/r/pull/{n}",
                    "created_at": "2024-01-10T00:00:00Z",
                }
                for n in range((number - 1) * 100 + 1, number * 100 + 1)
            ]
            return Ok(json.dumps({"total_count": 1500, "items": items}))

        responses: list[Result[str, ProcessError]] = [page(n) for n in range(1, 11)]
        responses.append(_err(stderr="HTTP 422: Cannot access beyond the first 1000 results"))
        fake = _install(monkeypatch, responses)
        console = MockConsole()

        records = list(
            gh_mod.GhReleaseSource(tmp_path, console=console).search_merged("o/r", "1970-01-01")
        )

        assert len(records) == 1000
        assert not any(isinstance(r, Err) for r in records)
        assert _param(fake.calls[-1], "page") == "10"
        assert len(console.find("warning: search/issues: 1500 results")) == 1

    def test_unexpected_payload(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        _install(monkeypatch, [Ok(json.dumps({"message": "Validation Failed"}))])

        records = list(gh_mod.iter_merged_pull_requests(root=tmp_path, repo="o/r", after="1970-01-01"))

        assert len(records) == 1
        assert isinstance(records[0], Err)
        assert records[0].error.kind == "collector_unavailable"


class TestCreatePullRequest:
    def _create(self, tmp_path: Path, *, dry_run: bool = False) -> Result[str, ReleaseError]:
        return gh_mod.create_pull_request(
            root=tmp_path,
            repo="o/r",
            base_branch="master",
            branch="release-1.3.0",
            title="Release 1.3.0",
            body="* [#12](https://github.com/o/r/pull/12): Fix parser",
            console=MockConsole(),
            dry_run=dry_run,
        )

    def test_returns_url(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _install(
            monkeypatch,
            [Ok("Creating pull request...\nhttps://github.com/o/r/pull/20\n")],
        )

        assert self._create(tmp_path) == Ok("https://github.com/o/r/pull/20")
        cmd = fake.calls[0]
        assert cmd[:3] == ["gh", "pr", "create"]
        assert cmd[cmd.index("--head") + 1] == "release-1.3.0"
        assert cmd[cmd.index("--base") + 1] == "master"
        assert cmd[cmd.index("--title") + 1] == "Release 1.3.0"

    def test_failure_is_not_retried(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, no_sleep: None
    ) -> None:
        fake = _install(monkeypatch, [_err(stderr="HTTP 502 Bad Gateway")])

        result = self._create(tmp_path)

        assert isinstance(result, Err)
        assert len(fake.calls) == 1

    def test_unexpected_output(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        _install(monkeypatch, [Ok("")])

        result = self._create(tmp_path)

        assert isinstance(result, Err)

    def test_dry_run_skips_gh(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        fake = _install(monkeypatch, [])

        assert self._create(tmp_path, dry_run=True) == Ok("(dry-run)")
        assert fake.calls == []


def test_repo_slug(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _install(monkeypatch, [Ok('{"nameWithOwner": "o/r"}')])
    assert gh_mod.repo_slug(root=tmp_path) == Ok("o/r")


def test_ensure_gh_auth(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _install(monkeypatch, [_err(stderr="not logged in")])

    result = gh_mod.ensure_gh_auth(root=tmp_path)

    assert isinstance(result, Err)
    assert result.error.kind == "gh_auth_required"


def test_ensure_gh_available(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gh_mod.shutil, "which", lambda name: None)

    result = gh_mod.ensure_gh_available()

    assert isinstance(result, Err)
    assert result.error.kind == "gh_missing"
