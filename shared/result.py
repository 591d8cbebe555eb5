"""
Tagged success/failure values returned by every public token operation.

``Ok(value)`` carries a result, ``Err(error)`` carries an AppError. Callers
branch on ``is_ok()`` / ``is_err()`` (or ``isinstance``); ``unwrap()`` raises
the carried error for code that prefers exceptions at its own boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, NoReturn, TypeVar, Union

from errors import AppError

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=AppError)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError("unwrap_err() called on Ok")

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        return Ok(fn(self.value))


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise self.error

    def unwrap_err(self) -> E:
        return self.error

    def map(self, fn: Callable) -> "Err[E]":
        return self


Result = Union[Ok[T], Err[AppError]]
