"""
Result values for calls that can fail without raising.

The HTTP layer returns a `Result` instead of throwing so that callers with
different failure policies (store the error, drop it, log it) branch on one
value instead of each wrapping the call in its own try/except.

Example:
    result = await client.get_json("api/projects", token=token)
    match result:
        case Success(payload):
            render(payload)
        case Failure(error):
            show_retry(error)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union, cast

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """A call that produced a value."""

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, _default: T) -> T:
        return self.value

    def map(self, func: Callable[[T], U]) -> Success[U]:
        return Success(func(self.value))


@dataclass(frozen=True, slots=True)
class Failure(Generic[E]):
    """A call that failed with `error`."""

    error: E

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def unwrap(self):
        """Raise the stored error."""
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(f"Operation failed: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, _func: Callable) -> Failure[E]:
        return cast(Failure[E], self)


Result = Union[Success[T], Failure[E]]


__all__ = ["Failure", "Result", "Success"]
