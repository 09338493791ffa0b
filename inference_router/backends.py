"""FunctionBackend: wrap a plain async callable as a Backend."""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from inference_router.models import Backend, BackendResult, TaskDescriptor

BackendFunc = Callable[[TaskDescriptor], Awaitable[Any]]


class FunctionBackend(Backend):
    """Adapts a feature's inference coroutine to the Backend interface.

    The coroutine may return a ``BackendResult`` or a ``(data, confidence)``
    tuple; tuples are wrapped with the measured processing time. Raising
    ``BackendError`` reports a classified failure, anything else is treated
    as a processing failure by the router.
    """

    def __init__(
        self,
        func: BackendFunc,
        *,
        name: str | None = None,
        max_concurrency: int | None = None,
        available: Callable[[], bool] | None = None,
        cost_per_call: float = 0.0,
    ):
        self._func = func
        self._name = name or getattr(func, "__name__", "function")
        self.max_concurrency = max_concurrency
        self._available = available
        self._cost_per_call = cost_per_call

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self._available() if self._available else True

    async def invoke(self, descriptor: TaskDescriptor) -> BackendResult:
        start = time.monotonic()
        outcome = await self._func(descriptor)
        if isinstance(outcome, BackendResult):
            return outcome

        data, confidence = outcome
        elapsed = time.monotonic() - start
        logger.debug(f"{self._name}: confidence={confidence:.2f} in {elapsed * 1000:.0f}ms")
        return BackendResult.success(
            data, confidence=confidence, processing_time=elapsed, cost=self._cost_per_call,
        )
