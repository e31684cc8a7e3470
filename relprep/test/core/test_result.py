"""Tests for relprep.core.result module."""

from relprep.core.result import Err, Ok, Result


class TestOk:
    """Tests for Ok type."""

    def test_ok_map_err_is_noop(self) -> None:
        assert Ok(42).map_err(lambda e: f"error: {e}") == Ok(42)

    def test_repr(self) -> None:
        assert repr(Ok("a")) == "Ok('a')"


class TestErr:
    """Tests for Err type."""

    def test_err_map_err(self) -> None:
        assert Err("boom").map_err(str.upper) == Err("BOOM")

    def test_map_err_wraps_error(self) -> None:
        """map_err lifts a lower-level error into a richer one."""
        lifted = Err(ValueError("no remote")).map_err(lambda e: ("vcs_failure", str(e)))
        assert lifted == Err(("vcs_failure", "no remote"))

    def test_repr(self) -> None:
        assert repr(Err("boom")) == "Err('boom')"


def test_pattern_matching() -> None:
    def describe(result: Result[int, str]) -> str:
        match result:
            case Ok(value):
                return f"value {value}"
            case Err(error):
                return f"error {error}"

    assert describe(Ok(3)) == "value 3"
    assert describe(Err("x")) == "error x"
