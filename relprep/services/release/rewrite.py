"""Line-oriented, pattern-based rewriting of version strings.

Rules are purely textual; no file format is parsed. A rule that matches
nothing is fine, so every rule set can be applied to any file and applied
again without further change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from relprep.core.result import Err, Ok, Result
from relprep.services.release.errors import ReleaseError
from relprep.services.release.model import Version
from relprep.services.release.store import FileStore


@dataclass(frozen=True, slots=True)
class RewriteRule:
    pattern: re.Pattern[str]
    replacement: str

    @classmethod
    def literal(cls, old: str, new: str) -> RewriteRule:
        """Exact string replacement."""
        return cls(re.compile(re.escape(old)), _escape_template(new))

    def apply(self, line: str) -> tuple[str, int]:
        return self.pattern.subn(self.replacement, line)


def _escape_template(text: str) -> str:
    return text.replace("\\", "\\\\")


def apply_rules(text: str, rules: list[RewriteRule]) -> tuple[str, int]:
    """Apply every rule, in order, to every line; return text and match count.

    Lines are split with their endings kept, so CRLF and a missing final
    newline survive unchanged. Patterns never see a line break.
    """
    total = 0
    out: list[str] = []
    for line in text.splitlines(keepends=True):
        body = line.rstrip("\r\n")
        ending = line[len(body) :]
        for rule in rules:
            body, n = rule.apply(body)
            total += n
        out.append(body + ending)
    return "".join(out), total


def readme_rules(*, name: str, version: Version, docs_url: str) -> list[RewriteRule]:
    """Docs links and dependency snippets, pinned to MAJOR.MINOR."""
    n = re.escape(name)
    mm = version.major_minor
    docs = docs_url.rstrip("/")
    return [
        RewriteRule(
            re.compile(rf'{re.escape(docs)}/{n}/[^/"\s]+/'),
            _escape_template(f"{docs}/{name}/{mm}/"),
        ),
        RewriteRule(re.compile(rf'\b{n} = "[^"]+"'), _escape_template(f'{name} = "{mm}"')),
        RewriteRule(
            re.compile(rf'\b{n} = \{{ version = "[^"]+"'),
            _escape_template(f'{name} = {{ version = "{mm}"'),
        ),
    ]


def root_url_rules(*, name: str, old: str, new: Version, docs_url: str) -> list[RewriteRule]:
    """The crate's ``html_root_url`` attribute, exact match on the old version."""
    docs = docs_url.rstrip("/")
    return [
        RewriteRule.literal(
            f'html_root_url = "{docs}/{name}/{old}"',
            f'html_root_url = "{docs}/{name}/{new}"',
        )
    ]


def manifest_rules(*, old: str, new: Version) -> list[RewriteRule]:
    return [RewriteRule.literal(f'version = "{old}"', f'version = "{new}"')]


def depgraph_rules(*, directory: str, name: str, version: Version) -> list[RewriteRule]:
    """Point ``/<dir>/<name>-<any>.svg`` references at the new graph."""
    d = str(PurePosixPath(directory))
    return [
        RewriteRule(
            re.compile(rf"/{re.escape(d)}/{re.escape(name)}-[^/\s\"')]+\.svg"),
            _escape_template(f"/{d}/{name}-{version}.svg"),
        )
    ]


def rewrite_file(
    store: FileStore,
    path: str,
    rules: list[RewriteRule],
) -> Result[int, ReleaseError]:
    """Rewrite path in place; returns how many replacements were made.

    The file is written back only when its text changed.
    """
    text = store.read(path)
    if isinstance(text, Err):
        return text

    updated, count = apply_rules(text.value, rules)
    if updated != text.value:
        written = store.write(path, updated)
        if isinstance(written, Err):
            return written
    return Ok(count)
