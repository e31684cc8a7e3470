from __future__ import annotations

from dataclasses import dataclass

EPOCH_CUTOFF = "1970-01-01"


@dataclass(frozen=True, slots=True, order=True)
class Version:
    major: int
    minor: int
    patch: int

    @property
    def major_minor(self) -> str:
        """Loose pin used in README snippets and docs links, e.g. ``1.3``."""
        return f"{self.major}.{self.minor}"

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True, slots=True)
class VersionPair:
    """Package name with the version being replaced and the one being released.

    ``old`` is kept verbatim from the manifest since it is matched literally
    against release tags and file contents.
    """

    name: str
    old: str
    new: Version


@dataclass(frozen=True, slots=True)
class NoReleaseNeeded:
    """The branch version equals the manifest version; nothing to do."""

    name: str
    version: str


@dataclass(frozen=True, slots=True)
class PackageMetadata:
    name: str
    version: str


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    tag_name: str
    published_at: str | None  # None for drafts


@dataclass(frozen=True, slots=True)
class PullRequestRecord:
    number: int
    title: str
    url: str
    merged_at: str | None
    created_at: str


@dataclass(frozen=True, slots=True)
class ChangelogFragment:
    lines: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def __len__(self) -> int:
        return len(self.lines)


@dataclass(frozen=True, slots=True)
class PrepareOutcome:
    pair: VersionPair
    fragment: ChangelogFragment
    pr_url: str
    commits: tuple[str, ...]
