from __future__ import annotations

from enum import Enum
from functools import partial
from pathlib import Path

from relprep.core.config import Config
from relprep.services.release.metadata import cargo_package_metadata, manifest_package_metadata
from relprep.services.release.orchestrator import MetadataSource


class MetadataMode(str, Enum):
    """Where the current package version is read from."""

    CARGO = "cargo"
    MANIFEST = "manifest"


def metadata_source(mode: MetadataMode, *, root: Path, config: Config) -> MetadataSource:
    if mode is MetadataMode.MANIFEST:
        return partial(manifest_package_metadata, manifest=root / config.files.manifest)
    return partial(cargo_package_metadata, root=root)
