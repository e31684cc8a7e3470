from __future__ import annotations

import re

from relprep.core.result import Err, Ok, Result
from relprep.services.release.errors import ReleaseError
from relprep.services.release.model import NoReleaseNeeded, Version, VersionPair

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


def version_from_ref(ref: str) -> str:
    """Take everything after the first ``-`` of a ref.

    ``refs/heads/release-1.3.0`` -> ``1.3.0``. A ref without ``-`` is
    returned whole, and will then fail version parsing.
    """
    _, sep, rest = ref.partition("-")
    return rest if sep else ref


def parse_version(text: str) -> Result[Version, ReleaseError]:
    # fullmatch semantics: `$` alone would accept a trailing newline.
    m = _VERSION_RE.fullmatch(text)
    if m is None:
        return Err(
            ReleaseError(
                kind="invalid_version_format",
                message=f"invalid release version: {text!r}",
                hint="Expected MAJOR.MINOR.PATCH, e.g. release-1.3.0",
            )
        )
    return Ok(Version(int(m.group(1)), int(m.group(2)), int(m.group(3))))


def resolve_versions(
    *,
    name: str,
    current: str,
    ref: str,
) -> Result[VersionPair | NoReleaseNeeded, ReleaseError]:
    """Decide between the manifest version and the one carried by ref.

    The target format is checked before the no-op comparison, so a bad
    branch name fails even when it happens to equal the current version.
    """
    target = version_from_ref(ref)
    parsed = parse_version(target)
    if isinstance(parsed, Err):
        return parsed

    if target == current:
        return Ok(NoReleaseNeeded(name=name, version=current))
    return Ok(VersionPair(name=name, old=current, new=parsed.value))
