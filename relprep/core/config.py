"""Typed configuration loading and access.

Configuration comes from an optional ``release-prep.toml`` at the repository
root, overridden by CLI options. The resolved ``Config`` is passed explicitly
into the orchestrator; nothing reads configuration from globals.

Example ``release-prep.toml``::

    [committer]
    name = "Release Bot"
    email = "release-bot@example.com"

    [changelog]
    file = "CHANGELOG.md"
    heading_level = "##"

    [dependency_graph]
    dir = "docs/graphs"

    [pull_request]
    base = "main"
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_str_list, get_table

__all__ = [
    "CONFIG_FILENAME",
    "ChangelogConfig",
    "CommitterConfig",
    "Config",
    "ConfigError",
    "DependencyGraphConfig",
    "FilesConfig",
    "PullRequestConfig",
    "apply_overrides",
    "load_config",
    "load_config_or_default",
    "validate_for_prepare",
]

CONFIG_FILENAME = "release-prep.toml"

DEFAULT_CHANGELOG_FILE = "CHANGELOG.md"
DEFAULT_HEADING_LEVEL = "##"
DEFAULT_DOCS_URL = "https://docs.rs"
DEFAULT_TEST_COMMAND = ("cargo", "test")

_HEADING_LEVEL_RE = re.compile(r"^#{1,6}$")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or is incomplete."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class CommitterConfig:
    """Identity used for the automated commits."""

    name: str | None = None
    email: str | None = None


@dataclass(frozen=True, slots=True)
class ChangelogConfig:
    file: str = DEFAULT_CHANGELOG_FILE
    heading_level: str = DEFAULT_HEADING_LEVEL


@dataclass(frozen=True, slots=True)
class FilesConfig:
    """Version-bearing files, relative to the repository root."""

    manifest: str = "Cargo.toml"
    readme: str = "README.md"
    lib_root: str = "src/lib.rs"
    docs_url: str = DEFAULT_DOCS_URL


@dataclass(frozen=True, slots=True)
class DependencyGraphConfig:
    """Dependency graph output directory; empty disables regeneration."""

    dir: str = ""

    @property
    def enabled(self) -> bool:
        return self.dir != ""


@dataclass(frozen=True, slots=True)
class PullRequestConfig:
    base: str = "master"
    branch_prefix: str = "release-"
    remote: str = "origin"


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    committer: CommitterConfig = field(default_factory=CommitterConfig)
    changelog: ChangelogConfig = field(default_factory=ChangelogConfig)
    files: FilesConfig = field(default_factory=FilesConfig)
    dependency_graph: DependencyGraphConfig = field(default_factory=DependencyGraphConfig)
    pull_request: PullRequestConfig = field(default_factory=PullRequestConfig)
    test_command: tuple[str, ...] = DEFAULT_TEST_COMMAND
    repo: str | None = None
    dry_run: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        committer: StrDict = get_table(data, "committer") or {}
        changelog: StrDict = get_table(data, "changelog") or {}
        files: StrDict = get_table(data, "files") or {}
        docs: StrDict = get_table(data, "docs") or {}
        graph: StrDict = get_table(data, "dependency_graph") or {}
        pr: StrDict = get_table(data, "pull_request") or {}
        tests: StrDict = get_table(data, "tests") or {}

        command = get_str_list(tests, "command")

        return cls(
            committer=CommitterConfig(
                name=get_str(committer, "name"),
                email=get_str(committer, "email"),
            ),
            changelog=ChangelogConfig(
                file=get_str(changelog, "file") or DEFAULT_CHANGELOG_FILE,
                heading_level=get_str(changelog, "heading_level") or DEFAULT_HEADING_LEVEL,
            ),
            files=FilesConfig(
                manifest=get_str(files, "manifest") or "Cargo.toml",
                readme=get_str(files, "readme") or "README.md",
                lib_root=get_str(files, "lib_root") or "src/lib.rs",
                docs_url=(get_str(docs, "url") or DEFAULT_DOCS_URL).rstrip("/"),
            ),
            dependency_graph=DependencyGraphConfig(dir=get_str(graph, "dir") or ""),
            pull_request=PullRequestConfig(
                base=get_str(pr, "base") or "master",
                branch_prefix=get_str(pr, "branch_prefix") or "release-",
                remote=get_str(pr, "remote") or "origin",
            ),
            test_command=tuple(command) if command else DEFAULT_TEST_COMMAND,
            repo=get_str(data, "repo"),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to release-prep.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config if the file exists, else return defaults.

    A present but broken file is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)


def apply_overrides(
    config: Config,
    *,
    name: str | None = None,
    email: str | None = None,
    changelog_file: str | None = None,
    heading_level: str | None = None,
    dependency_graph: str | None = None,
    repo: str | None = None,
    base: str | None = None,
    dry_run: bool | None = None,
) -> Config:
    """Return a copy of config with every non-None override applied.

    ``dependency_graph=""`` explicitly disables graph regeneration.
    """
    committer = replace(
        config.committer,
        name=name if name is not None else config.committer.name,
        email=email if email is not None else config.committer.email,
    )
    changelog = replace(
        config.changelog,
        file=changelog_file or config.changelog.file,
        heading_level=heading_level or config.changelog.heading_level,
    )
    graph = (
        DependencyGraphConfig(dir=dependency_graph.strip())
        if dependency_graph is not None
        else config.dependency_graph
    )
    pull_request = replace(config.pull_request, base=base or config.pull_request.base)

    return replace(
        config,
        committer=committer,
        changelog=changelog,
        dependency_graph=graph,
        pull_request=pull_request,
        repo=repo or config.repo,
        dry_run=config.dry_run if dry_run is None else dry_run,
    )


def validate_for_prepare(config: Config) -> Result[None, ConfigError]:
    """Check the settings a full prepare run cannot do without."""
    if config.committer.name is None:
        return Err(ConfigError("missing committer name (use --name or [committer] name)"))
    if config.committer.email is None:
        return Err(ConfigError("missing committer email (use --email or [committer] email)"))
    if not _HEADING_LEVEL_RE.match(config.changelog.heading_level):
        return Err(
            ConfigError(f"invalid changelog heading level: {config.changelog.heading_level!r}")
        )
    if not config.test_command:
        return Err(ConfigError("empty test command"))
    return Ok(None)
