"""Core data models for inference-router."""

import asyncio
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Generic, TypeVar

from inference_router.errors import InvalidConfiguration

T = TypeVar("T")


def _is_number(value: Any) -> bool:
    """Finite int or float; bools and NaN do not count."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class BackendKind(str, Enum):
    """Which side of the router a backend sits on."""

    LOCAL = "local"
    REMOTE = "remote"


class ErrorKind(str, Enum):
    """Why a backend invocation failed."""

    UNAVAILABLE = "unavailable"
    PERMISSION_DENIED = "permission_denied"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    PROCESSING_FAILED = "processing_failed"
    CANCELLED = "cancelled"  # telemetry only, never raised by backends


class CancellationToken:
    """Caller-owned flag that aborts an in-flight route call."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(frozen=True)
class TaskDescriptor:
    """One unit of work handed to the router.

    ``deadline`` is a duration (seconds or ``timedelta``) measured from the
    start of ``Router.route``; it is normalized to float seconds.
    """

    payload: Any
    complexity_hint: float | None = None
    deadline: float | timedelta | None = None
    cancel_token: CancellationToken | None = None

    def __post_init__(self) -> None:
        if isinstance(self.deadline, timedelta):
            object.__setattr__(self, "deadline", self.deadline.total_seconds())
        if self.deadline is not None and not (_is_number(self.deadline) and self.deadline > 0):
            raise InvalidConfiguration(f"deadline must be a positive number, got {self.deadline!r}")
        if self.complexity_hint is not None and not (
            _is_number(self.complexity_hint) and 0.0 <= self.complexity_hint <= 1.0
        ):
            raise InvalidConfiguration(
                f"complexity_hint must be within [0, 1], got {self.complexity_hint!r}"
            )


@dataclass(frozen=True)
class BackendResult(Generic[T]):
    """Outcome of a single backend invocation.

    Exactly one of ``data`` (with ``succeeded=True``) or ``error_kind``
    (with ``succeeded=False``) is populated.
    """

    data: T | None
    confidence: float
    processing_time: float | None
    succeeded: bool
    error_kind: ErrorKind | None = None
    error: str = ""
    cost: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.succeeded and self.error_kind is not None:
            raise ValueError("a successful result cannot carry an error kind")
        if not self.succeeded and self.error_kind is None:
            raise ValueError("a failed result must carry an error kind")
        if not self.succeeded and self.data is not None:
            raise ValueError("a failed result cannot carry data")

    @property
    def reason(self) -> str:
        """Short failure description, empty for successful results."""
        if self.succeeded:
            return ""
        return f"{self.error_kind.value}: {self.error}" if self.error else self.error_kind.value

    @classmethod
    def success(
        cls,
        data: T,
        confidence: float,
        processing_time: float | None = None,
        cost: float = 0.0,
    ) -> "BackendResult[T]":
        return cls(
            data=data, confidence=confidence, processing_time=processing_time,
            succeeded=True, cost=cost,
        )

    @classmethod
    def failure(
        cls,
        error_kind: ErrorKind,
        error: str = "",
        processing_time: float | None = None,
    ) -> "BackendResult[T]":
        return cls(
            data=None, confidence=0.0, processing_time=processing_time,
            succeeded=False, error_kind=error_kind, error=error,
        )


@dataclass(frozen=True)
class RoutingResult(Generic[T]):
    """The only value returned to callers of ``Router.route``."""

    data: T
    source: BackendKind
    confidence: float
    processing_time: float
    fallback_used: bool


class Backend(ABC, Generic[T]):
    """Abstract base class for inference backends."""

    # Maximum in-flight invocations the backend tolerates; None means unlimited.
    max_concurrency: int | None = None

    @abstractmethod
    async def invoke(self, descriptor: TaskDescriptor) -> BackendResult[T]:
        """Run the task and report the result with a confidence score."""
        ...

    def is_available(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return self.__class__.__name__
