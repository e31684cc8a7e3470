from __future__ import annotations

from relprep.core.result import Err, Ok, Result
from relprep.services.release.errors import ReleaseError
from relprep.services.release.model import ChangelogFragment, Version


def release_heading(*, heading_level: str, version: Version, date: str) -> str:
    return f"{heading_level} Version {version} ({date})"


def insert_release_section(
    text: str,
    *,
    heading_level: str,
    version: Version,
    fragment: ChangelogFragment,
    date: str,
) -> Result[str, ReleaseError]:
    """Add a dated section for ``version`` to a changelog.

    An ``Unreleased`` heading is turned into the new section. Without one,
    the section goes right before the most recent ``Version`` heading.
    Exactly one substitution happens, or the changelog is rejected.

    Note the anchors are plain substrings: ``## Version`` also matches the
    start of ``### Version`` when the level is ``##``.
    """
    heading = release_heading(heading_level=heading_level, version=version, date=date)

    unreleased = f"{heading_level} Unreleased"
    if unreleased in text:
        return Ok(text.replace(unreleased, f"{heading}\n\n{fragment.text}", 1))

    latest = f"{heading_level} Version"
    if latest in text:
        return Ok(text.replace(latest, f"{heading}\n\n{fragment.text}\n\n{latest}", 1))

    return Err(
        ReleaseError(
            kind="changelog_anchor_not_found",
            message=f"changelog has neither '{unreleased}' nor '{latest}' heading",
            hint=f"Add a '{unreleased}' heading to the changelog",
        )
    )
