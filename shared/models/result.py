"""Internal result type for degradable operations.

Search internals return Result so tests and logs can tell "zero relevant
results" apart from "a collaborator failed". Public entry points flatten a
failed Result into an empty list.
"""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class SearchError(str, Enum):
    EMBED_FAILED = "embed_failed"
    EMBED_TIMEOUT = "embed_timeout"
    INDEX_FAILED = "index_failed"
    INDEX_TIMEOUT = "index_timeout"
    STORE_FAILED = "store_failed"


class Result(BaseModel, Generic[T]):
    """Either a value or a SearchError with a short detail message."""

    value: T | None = None
    error: SearchError | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: SearchError, detail: str | None = None) -> "Result[T]":
        return cls(error=error, detail=detail)

    def unwrap_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value
