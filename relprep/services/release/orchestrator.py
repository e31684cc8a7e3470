"""Sequence the release preparation stages.

Resolve -> (stop if no release is needed) -> dependency graph -> changelog
-> version rewrites -> tests -> version bump commit -> push -> pull request.

The first failing stage ends the run. Commits already made stay in place
for the operator to inspect.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from relprep.core.config import Config
from relprep.core.result import Err, Ok, Result
from relprep.git.repository import GitError
from relprep.output.console import ConsoleProtocol, Style
from relprep.services.release.changelog import insert_release_section
from relprep.services.release.collector import ReleaseSource, collect_release_notes
from relprep.services.release.errors import ReleaseError
from relprep.services.release.model import (
    ChangelogFragment,
    NoReleaseNeeded,
    PackageMetadata,
    PrepareOutcome,
    Version,
    VersionPair,
)
from relprep.services.release.rewrite import (
    RewriteRule,
    depgraph_rules,
    manifest_rules,
    readme_rules,
    rewrite_file,
    root_url_rules,
)
from relprep.services.release.store import FileStore
from relprep.services.release.version import resolve_versions, version_from_ref


class MetadataSource(Protocol):
    def __call__(self) -> Result[PackageMetadata, ReleaseError]: ...


class VersionControl(Protocol):
    def configure_user(self, *, name: str, email: str) -> Result[None, GitError]: ...

    def diff(self) -> Result[str, GitError]: ...

    def commit_all(self, message: str) -> Result[None, GitError]: ...

    def commit_paths(self, paths: list[str], message: str) -> Result[None, GitError]: ...

    def push(self, *, remote: str, refspec: str) -> Result[str, GitError]: ...


class SuiteRunner(Protocol):
    def run(self) -> Result[None, ReleaseError]: ...


class PullRequestCreator(Protocol):
    def create_pull_request(
        self, *, repo: str, head: str, base: str, title: str, body: str
    ) -> Result[str, ReleaseError]: ...


class GraphWriter(Protocol):
    def __call__(self, *, name: str, version: Version) -> Result[str, ReleaseError]: ...


def utc_today() -> str:
    return datetime.now(UTC).date().isoformat()


def resolve_release(
    *,
    metadata: MetadataSource,
    ref: str,
    console: ConsoleProtocol,
) -> Result[VersionPair | NoReleaseNeeded, ReleaseError]:
    """Compare the manifest version with the one named by ref."""
    console.header("Resolve versions")
    meta = metadata()
    if isinstance(meta, Err):
        return meta

    console.print(f"Version from manifest: {meta.value.version}", Style.DIM)
    console.print(f"Version from branch:   {version_from_ref(ref)}", Style.DIM)
    resolved = resolve_versions(name=meta.value.name, current=meta.value.version, ref=ref)
    if isinstance(resolved, Ok) and isinstance(resolved.value, NoReleaseNeeded):
        console.success(f"{resolved.value.name} is already at {resolved.value.version}")
    return resolved


def _vcs_error(e: GitError) -> ReleaseError:
    return ReleaseError(kind="vcs_failure", message=f"git {e.command} failed", hint=e.message)


class ReleaseOrchestrator:
    """Prepare a release pull request for one package.

    Every side effect goes through an injected collaborator, so the whole
    sequence runs in tests against fakes.
    """

    def __init__(
        self,
        *,
        config: Config,
        metadata: MetadataSource,
        releases: ReleaseSource,
        store: FileStore,
        vcs: VersionControl,
        tests: SuiteRunner,
        pull_requests: PullRequestCreator,
        console: ConsoleProtocol,
        graph: GraphWriter | None = None,
        today: Callable[[], str] = utc_today,
    ) -> None:
        self.config = config
        self.metadata = metadata
        self.releases = releases
        self.store = store
        self.vcs = vcs
        self.tests = tests
        self.pull_requests = pull_requests
        self.console = console
        self.graph = graph
        self.today = today
        self._commits: list[str] = []

    def run(self, ref: str) -> Result[PrepareOutcome | NoReleaseNeeded, ReleaseError]:
        resolved = resolve_release(metadata=self.metadata, ref=ref, console=self.console)
        if isinstance(resolved, Err):
            return resolved
        if isinstance(resolved.value, NoReleaseNeeded):
            return Ok(resolved.value)
        return self.prepare(resolved.value)

    def prepare(self, pair: VersionPair) -> Result[PrepareOutcome, ReleaseError]:
        """Run every stage after version resolution."""
        self._commits = []

        repo = self.config.repo
        if repo is None:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message="GitHub repository not configured",
                    hint="Pass --repo owner/name or set GITHUB_REPOSITORY",
                )
            )

        committer = self.config.committer
        if committer.name is None or committer.email is None:
            return Err(ReleaseError(kind="invalid_input", message="committer name/email missing"))
        configured = self.vcs.configure_user(name=committer.name, email=committer.email)
        if isinstance(configured, Err):
            return configured.map_err(_vcs_error)

        if self.graph is not None and self.config.dependency_graph.enabled:
            graph = self._dependency_graph(pair, self.graph)
            if isinstance(graph, Err):
                return graph

        fragment = self._changelog(pair, repo=repo)
        if isinstance(fragment, Err):
            return fragment

        bumped = self._bump_versions(pair)
        if isinstance(bumped, Err):
            return bumped

        self.console.header("Build and test")
        tested = self.tests.run()
        if isinstance(tested, Err):
            return tested

        committed = self._commit_all(f"Bump version to {pair.new}")
        if isinstance(committed, Err):
            return committed

        pr_url = self._publish(pair, repo=repo, fragment=fragment.value)
        if isinstance(pr_url, Err):
            return pr_url

        return Ok(
            PrepareOutcome(
                pair=pair,
                fragment=fragment.value,
                pr_url=pr_url.value,
                commits=tuple(self._commits),
            )
        )

    def _dependency_graph(self, pair: VersionPair, graph: GraphWriter) -> Result[None, ReleaseError]:
        directory = self.config.dependency_graph.dir
        self.console.header("Generate dependency graph")

        path = graph(name=pair.name, version=pair.new)
        if isinstance(path, Err):
            return path

        lib_root = self.config.files.lib_root
        paths = [path.value]
        if self.store.exists(lib_root):
            updated = self._rewrite(
                lib_root, depgraph_rules(directory=directory, name=pair.name, version=pair.new)
            )
            if isinstance(updated, Err):
                return updated
            paths.append(lib_root)

        message = f"Add dependency graph for version {pair.new}"
        committed = self.vcs.commit_paths(paths, message)
        if isinstance(committed, Err):
            return committed.map_err(_vcs_error)
        self._commits.append(message)
        return Ok(None)

    def _changelog(self, pair: VersionPair, *, repo: str) -> Result[ChangelogFragment, ReleaseError]:
        self.console.header(f"Update changelog for version {pair.new}")
        fragment = collect_release_notes(
            source=self.releases, repo=repo, old_version=pair.old, console=self.console
        )
        if isinstance(fragment, Err):
            return fragment

        path = self.config.changelog.file
        text = self.store.read(path)
        if isinstance(text, Err):
            return text

        updated = insert_release_section(
            text.value,
            heading_level=self.config.changelog.heading_level,
            version=pair.new,
            fragment=fragment.value,
            date=self.today(),
        )
        if isinstance(updated, Err):
            return updated

        written = self.store.write(path, updated.value)
        if isinstance(written, Err):
            return written
        self.console.print(f"Wrote {path}", Style.DIM)

        self._show_diff()
        committed = self._commit_all(f"Update changelog for version {pair.new}")
        if isinstance(committed, Err):
            return committed
        return Ok(fragment.value)

    def _bump_versions(self, pair: VersionPair) -> Result[None, ReleaseError]:
        self.console.header(f"Update versions to {pair.new}")
        files = self.config.files
        optional: list[tuple[str, list[RewriteRule]]] = [
            (files.readme, readme_rules(name=pair.name, version=pair.new, docs_url=files.docs_url)),
            (
                files.lib_root,
                root_url_rules(name=pair.name, old=pair.old, new=pair.new, docs_url=files.docs_url),
            ),
        ]
        for path, rules in optional:
            if not self.store.exists(path):
                self.console.warning(f"{path}: not found, skipped")
                continue
            updated = self._rewrite(path, rules)
            if isinstance(updated, Err):
                return updated

        updated = self._rewrite(files.manifest, manifest_rules(old=pair.old, new=pair.new))
        if isinstance(updated, Err):
            return updated

        self._show_diff()
        return Ok(None)

    def _publish(
        self, pair: VersionPair, *, repo: str, fragment: ChangelogFragment
    ) -> Result[str, ReleaseError]:
        pr = self.config.pull_request
        head = f"{pr.branch_prefix}{pair.new}"

        self.console.header("Push and open pull request")
        self.console.print(f"git push {pr.remote} HEAD:{head}", Style.DIM)
        if not self.config.dry_run:
            pushed = self.vcs.push(remote=pr.remote, refspec=f"HEAD:{head}")
            if isinstance(pushed, Err):
                return pushed.map_err(_vcs_error)

        url = self.pull_requests.create_pull_request(
            repo=repo,
            head=head,
            base=pr.base,
            title=f"Release {pair.new}",
            body=fragment.text,
        )
        if isinstance(url, Err):
            return url
        self.console.success(f"Created PR: {url.value}")
        return url

    def _rewrite(self, path: str, rules: list[RewriteRule]) -> Result[int, ReleaseError]:
        count = rewrite_file(self.store, path, rules)
        if isinstance(count, Err):
            return count
        if count.value == 0:
            self.console.print(f"{path}: no matches", Style.DIM)
        else:
            self.console.print(f"{path}: {count.value} replacement(s)", Style.DIM)
        return count

    def _commit_all(self, message: str) -> Result[None, ReleaseError]:
        self.console.print(f"git commit --all -m {message!r}", Style.DIM)
        committed = self.vcs.commit_all(message).map_err(_vcs_error)
        if isinstance(committed, Ok):
            self._commits.append(message)
        return committed

    def _show_diff(self) -> None:
        diff = self.vcs.diff()
        # Display only; a failed diff must not stop the release.
        if isinstance(diff, Ok):
            self.console.diff(diff.value)
        else:
            self.console.warning(f"git diff failed: {diff.error.message}")
