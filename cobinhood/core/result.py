"""
Result Type

REST calls never raise for exchange or network failures; they return either
Ok(value) or Err(error). Exactly one of the two is ever populated.

Usage:
    result = await client.balances()
    if result.is_ok:
        print(result.value)
    else:
        print(result.kind, result.error)

    # Or raise the wrapped error
    balances = result.unwrap()
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from cobinhood.core.errors import CobinhoodError, ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result holding a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def map(self, fn: Callable[[T], Any]) -> "Ok":
        """Apply fn to the value and wrap the outcome."""
        return Ok(fn(self.value))


@dataclass(frozen=True)
class Err:
    """Failed result holding a CobinhoodError."""

    error: CobinhoodError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def detail(self) -> str:
        return str(self.error)

    def unwrap(self):
        raise self.error

    def map(self, fn: Callable[[Any], Any]) -> "Err":
        return self


Result = Union[Ok[T], Err]
