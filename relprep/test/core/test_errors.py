"""Tests for relprep.core.errors module."""

from relprep.core.errors import ErrorCode


def test_codes_are_stable() -> None:
    assert [int(c) for c in ErrorCode] == [0, 1, 2, 3, 4, 5, 6]


def test_str() -> None:
    assert str(ErrorCode.USER_ERROR) == "user error"
    assert str(ErrorCode.VCS_ERROR) == "vcs error"
