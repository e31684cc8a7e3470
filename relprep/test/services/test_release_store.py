from __future__ import annotations

from pathlib import Path

from relprep.core.result import Err, Ok
from relprep.services.release.store import FileStore


def test_read_write_round_trip_keeps_bytes(tmp_path: Path) -> None:
    store = FileStore(tmp_path)

    assert store.write("docs/CHANGELOG.md", "## Unreleased\r\n") == Ok(None)
    assert store.read("docs/CHANGELOG.md") == Ok("## Unreleased\r\n")
    assert (tmp_path / "docs" / "CHANGELOG.md").read_bytes() == b"## Unreleased\r\n"


def test_exists(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "lib.rs").write_text("", encoding="utf-8")
    store = FileStore(tmp_path)

    assert store.exists("src/lib.rs") is True
    assert store.exists("src") is False
    assert store.exists("README.md") is False
    assert store.exists("../outside.md") is False


def test_paths_may_not_escape_root(tmp_path: Path) -> None:
    store = FileStore(tmp_path / "repo")

    result = store.write("../evil.md", "x")

    assert isinstance(result, Err)
    assert result.error.kind == "invalid_input"
    assert not (tmp_path / "evil.md").exists()


def test_read_missing(tmp_path: Path) -> None:
    result = FileStore(tmp_path).read("CHANGELOG.md")

    assert isinstance(result, Err)
    assert result.error.kind == "io_failed"
