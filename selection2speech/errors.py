"""
Errors module for selection2speech package.

Pipeline stages report failures as values instead of raising them, so the
orchestrator can decide per origin whether an invocation must stop.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorOrigin(str, Enum):
    NETWORK = "network"
    SERVICE = "service"
    PARSE = "parse"
    FILESYSTEM = "filesystem"
    CONFIGURATION = "configuration"


@dataclass(frozen=True)
class ServiceError:
    """A failure reported by one of the pipeline stages."""

    origin: ErrorOrigin
    message: str
    raw: Any = None

    @property
    def fatal(self) -> bool:
        # Only local persistence failures leave the invocation usable.
        return self.origin is not ErrorOrigin.FILESYSTEM

    def __str__(self) -> str:
        return f"{self.origin.value}: {self.message}"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a ServiceError, never both."""

    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, origin: ErrorOrigin, message: str, raw: Any = None) -> "Result[T]":
        return cls(error=ServiceError(origin, message, raw))
