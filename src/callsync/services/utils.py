from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return utc_now().replace(microsecond=0).isoformat()


def first_match(candidates: Iterable[T], attempt: Callable[[T], R | None]) -> R | None:
    """Return the first non-empty result of ``attempt`` over ``candidates``, in order."""
    for candidate in candidates:
        result = attempt(candidate)
        if result is not None:
            return result
    return None
