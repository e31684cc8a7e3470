from __future__ import annotations

import json
import tomllib
from pathlib import Path

from relprep.core.result import Err, Ok, Result
from relprep.core.structured import as_obj_list, as_str_dict, get_str, get_table
from relprep.platform.process import run as run_process
from relprep.services.release.errors import ReleaseError
from relprep.services.release.model import PackageMetadata
from relprep.services.release.timeouts import TOOL_TIMEOUT_SECONDS


def cargo_package_metadata(*, root: Path) -> Result[PackageMetadata, ReleaseError]:
    """Name and version of the first package reported by `cargo metadata`."""
    result = run_process(
        ["cargo", "metadata", "-q", "--no-deps", "--format-version", "1"],
        cwd=root,
        timeout=TOOL_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="metadata_unavailable",
                message="cargo metadata failed",
                hint=result.error.stderr.strip() or None,
            )
        )
    return parse_cargo_metadata(result.value)


def parse_cargo_metadata(payload: str) -> Result[PackageMetadata, ReleaseError]:
    try:
        obj: object = json.loads(payload)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="metadata_unavailable",
                message=f"invalid JSON from cargo metadata: {e}",
            )
        )

    data = as_str_dict(obj)
    packages = as_obj_list(data.get("packages")) if data is not None else None
    if not packages:
        return Err(
            ReleaseError(kind="metadata_unavailable", message="cargo metadata lists no packages")
        )

    first = as_str_dict(packages[0])
    name = get_str(first, "name") if first is not None else None
    version = get_str(first, "version") if first is not None else None
    if name is None or version is None:
        return Err(
            ReleaseError(
                kind="metadata_unavailable",
                message="cargo metadata package is missing name or version",
            )
        )
    return Ok(PackageMetadata(name=name, version=version))


def manifest_package_metadata(*, manifest: Path) -> Result[PackageMetadata, ReleaseError]:
    """Read ``[package]`` name and version straight from Cargo.toml.

    Works without a Rust toolchain, but does not resolve
    ``version.workspace = true``.
    """
    try:
        data_obj: object = tomllib.loads(manifest.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="metadata_unavailable",
                message=f"failed to read {manifest.name}: {e}",
                hint=str(manifest),
            )
        )
    except tomllib.TOMLDecodeError as e:
        return Err(
            ReleaseError(
                kind="metadata_unavailable",
                message=f"invalid TOML in {manifest.name}: {e}",
                hint=str(manifest),
            )
        )

    data = as_str_dict(data_obj) or {}
    package = get_table(data, "package")
    if package is None:
        return Err(
            ReleaseError(
                kind="metadata_unavailable",
                message=f"missing [package] section in {manifest.name}",
                hint=str(manifest),
            )
        )

    name = get_str(package, "name")
    version = get_str(package, "version")
    if name is None or version is None:
        return Err(
            ReleaseError(
                kind="metadata_unavailable",
                message=f"missing package name or version in {manifest.name}",
                hint=str(manifest),
            )
        )
    return Ok(PackageMetadata(name=name, version=version))
