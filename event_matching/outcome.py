"""Result type for best-effort operations.

A degraded outcome means the step failed, was logged, and the caller carried
on without it. It is never an exception.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    ok: bool
    value: T | None = None
    error: str | None = None
    skipped: bool = False

    @classmethod
    def succeeded(cls, value: T | None = None) -> "Outcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def degraded(cls, error: BaseException | str) -> "Outcome[T]":
        return cls(ok=False, error=str(error))

    @classmethod
    def skip(cls, reason: str | None = None) -> "Outcome[T]":
        """Nothing to do; counts as success."""
        return cls(ok=True, error=reason, skipped=True)

    @property
    def is_degraded(self) -> bool:
        return not self.ok
