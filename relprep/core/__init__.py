"""Core building blocks shared by every layer."""

from __future__ import annotations

from relprep.core.errors import ErrorCode
from relprep.core.result import Err, Ok, Result

__all__ = ["ErrorCode", "Err", "Ok", "Result"]
