"""Explicit success/failure values returned across client boundaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful outcome carrying *value*."""

    value: T


@dataclass(frozen=True)
class Err:
    """A failed outcome carrying the *error* that caused it."""

    error: Exception


Result = Union[Ok[T], Err]
