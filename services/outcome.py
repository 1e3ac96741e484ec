"""
Outcome — the return type of every engine operation.

Expected failures (bad credentials, missing records, conflicts, invalid input)
travel back to the caller as an AppError held inside a failed Outcome instead
of being raised. Store and delivery failures are still raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[AppError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError) -> "Outcome[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value, raising the held AppError on failure."""
        if self.error is not None:
            raise self.error
        return self.value
