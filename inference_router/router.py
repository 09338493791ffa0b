"""Router: picks between a local and a remote backend per task."""

import asyncio
import contextlib
import dataclasses
import functools
import time
from typing import Any, Generic, TypeVar

from loguru import logger

from inference_router.config import RouterConfig
from inference_router.errors import (
    AllBackendsFailed,
    BackendError,
    InvalidConfiguration,
    RoutingCancelled,
)
from inference_router.failover import BackendTier, FallbackChain
from inference_router.heuristics import (
    CapabilityEstimator,
    ComplexityAssessor,
    HostCapabilityEstimator,
)
from inference_router.models import (
    Backend,
    BackendKind,
    BackendResult,
    ErrorKind,
    RoutingResult,
    TaskDescriptor,
)
from inference_router.monitor import PerformanceMonitor
from inference_router.strategies import Strategy, resolve_strategy

T = TypeVar("T")


@dataclasses.dataclass
class _CallState:
    """Per-route bookkeeping shared by the invocations of one call."""

    started: float
    interrupt: ErrorKind = ErrorKind.CANCELLED
    interrupted: bool = False  # set before the router cancels its own work
    local_attempted: bool = False


class Router(Generic[T]):
    """Routes each task to a local backend, a remote backend, or both.

    Strategies:
      - native_only: local only, no fallback
      - native_first: local, then remote on failure or low confidence
      - remote_first: remote, then local on failure (remote is not gated)
      - hybrid: both concurrently, keep the more confident (ties go local)
      - auto: native_first when the device is capable and the task simple,
        hybrid otherwise

    Every backend invocation is recorded once with the performance monitor.
    Telemetry failures never affect the routing result.
    """

    def __init__(
        self,
        local: Backend[T],
        remote: Backend[T],
        *,
        monitor: PerformanceMonitor | None = None,
        assessor: ComplexityAssessor | None = None,
        estimator: CapabilityEstimator | None = None,
        config: RouterConfig | None = None,
    ):
        self._backends: dict[BackendKind, Backend[T]] = {
            BackendKind.LOCAL: local,
            BackendKind.REMOTE: remote,
        }
        self._monitor = monitor if monitor is not None else PerformanceMonitor()
        self._assessor = assessor or ComplexityAssessor()
        self._estimator = estimator or HostCapabilityEstimator()
        self._config = config or RouterConfig()
        self._limits: dict[BackendKind, asyncio.Semaphore] = {
            kind: asyncio.Semaphore(backend.max_concurrency)
            for kind, backend in self._backends.items()
            if backend.max_concurrency
        }

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    @property
    def config(self) -> RouterConfig:
        return self._config

    async def route(
        self,
        descriptor: TaskDescriptor,
        strategy: Strategy | str | None = None,
        config: RouterConfig | None = None,
    ) -> RoutingResult[T]:
        """Run the task under a strategy and return the selected result.

        Raises:
            InvalidConfiguration: Bad descriptor, strategy or config.
            AllBackendsFailed: No attempted backend produced an acceptable result.
            RoutingCancelled: The deadline expired or the cancel token fired.
        """
        if not isinstance(descriptor, TaskDescriptor):
            raise InvalidConfiguration(f"Expected TaskDescriptor, got {type(descriptor).__name__}")
        config = config or self._config
        if not isinstance(config, RouterConfig):
            raise InvalidConfiguration(f"Expected RouterConfig, got {type(config).__name__}")
        strategy = resolve_strategy(strategy) if strategy is not None else config.strategy

        token = descriptor.cancel_token
        if token is not None and token.cancelled:
            raise RoutingCancelled("cancelled")

        state = _CallState(started=time.monotonic())
        logger.info(f"Route: {strategy.value} | deadline={descriptor.deadline}")

        result = await self._run(strategy, descriptor, config, state)

        logger.info(
            f"Route done: {strategy.value} → {result.source.value} "
            f"confidence={result.confidence:.2f} time={result.processing_time:.2f}s "
            f"fallback={result.fallback_used}"
        )
        return result

    async def _run(
        self, strategy: Strategy, descriptor: TaskDescriptor,
        config: RouterConfig, state: _CallState,
    ) -> RoutingResult[T]:
        """Run the strategy as a task bounded by the deadline and cancel token.

        Only cancellation started here marks the call as interrupted; a
        CancelledError raised from inside a backend is a backend failure.
        """
        work = asyncio.ensure_future(self._dispatch(strategy, descriptor, config, state))
        waiters: set[asyncio.Future] = {work}
        token_waiter: asyncio.Future | None = None
        if descriptor.cancel_token is not None:
            token_waiter = asyncio.ensure_future(descriptor.cancel_token.wait())
            waiters.add(token_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=descriptor.deadline, return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            state.interrupted = True
            work.cancel()
            raise
        finally:
            if token_waiter is not None:
                token_waiter.cancel()

        if work in done:
            return work.result()

        reason = "cancelled" if token_waiter in done else "deadline"
        state.interrupt = ErrorKind.CANCELLED if reason == "cancelled" else ErrorKind.TIMEOUT
        state.interrupted = True
        logger.warning(f"Route interrupted ({reason}), cancelling in-flight backends")
        work.cancel()
        with contextlib.suppress(asyncio.CancelledError, AllBackendsFailed):
            await work
        raise RoutingCancelled(reason)

    async def _dispatch(
        self, strategy: Strategy, descriptor: TaskDescriptor,
        config: RouterConfig, state: _CallState,
    ) -> RoutingResult[T]:
        if strategy is Strategy.AUTO:
            strategy = self._choose_auto(descriptor, config)

        local = self._backends[BackendKind.LOCAL]
        remote = self._backends[BackendKind.REMOTE]

        if strategy is Strategy.HYBRID:
            return await self._hybrid(descriptor, state)

        if strategy is Strategy.NATIVE_ONLY:
            chain = [BackendTier(BackendKind.LOCAL, local)]
        elif strategy is Strategy.NATIVE_FIRST:
            chain = [
                BackendTier(BackendKind.LOCAL, local, min_confidence=config.confidence_threshold),
                BackendTier(BackendKind.REMOTE, remote),
            ]
        elif strategy is Strategy.REMOTE_FIRST:
            chain = [
                BackendTier(BackendKind.REMOTE, remote),
                BackendTier(BackendKind.LOCAL, local),
            ]
        else:
            raise InvalidConfiguration(f"Unsupported strategy: {strategy!r}")

        invoke = functools.partial(self._invoke, state=state)
        try:
            result, tier = await FallbackChain(invoke).try_backends(chain, descriptor)
        except AllBackendsFailed as e:
            logger.error(f"{strategy.value}: {e}")
            raise
        return self._wrap(result, tier.kind, state)

    def _choose_auto(self, descriptor: TaskDescriptor, config: RouterConfig) -> Strategy:
        complexity = self._assessor.assess(descriptor)
        capability = self._estimator.estimate()
        if (
            capability >= config.auto_capability_threshold
            and complexity < config.auto_complexity_threshold
        ):
            chosen = Strategy.NATIVE_FIRST
        else:
            chosen = Strategy.HYBRID
        logger.debug(
            f"Auto: capability={capability:.2f} complexity={complexity:.2f} → {chosen.value}"
        )
        return chosen

    async def _hybrid(self, descriptor: TaskDescriptor, state: _CallState) -> RoutingResult[T]:
        """Run both backends to completion and keep the more confident result."""
        local_result, remote_result = await asyncio.gather(
            self._invoke(BackendKind.LOCAL, self._backends[BackendKind.LOCAL], descriptor, state),
            self._invoke(BackendKind.REMOTE, self._backends[BackendKind.REMOTE], descriptor, state),
        )

        if local_result.succeeded and remote_result.succeeded:
            if local_result.confidence >= remote_result.confidence:
                logger.debug(f"Hybrid: both succeeded, local wins ({local_result.confidence:.2f})")
                return self._wrap(local_result, BackendKind.LOCAL, state)
            logger.debug(f"Hybrid: both succeeded, remote wins ({remote_result.confidence:.2f})")
            return self._wrap(remote_result, BackendKind.REMOTE, state)
        if local_result.succeeded:
            logger.info("Hybrid: only local succeeded")
            return self._wrap(local_result, BackendKind.LOCAL, state)
        if remote_result.succeeded:
            logger.info("Hybrid: only remote succeeded")
            return self._wrap(remote_result, BackendKind.REMOTE, state)

        error = AllBackendsFailed({
            BackendKind.LOCAL: local_result.reason,
            BackendKind.REMOTE: remote_result.reason,
        })
        logger.error(f"hybrid: {error}")
        raise error

    async def _invoke(
        self, kind: BackendKind, backend: Backend[T],
        descriptor: TaskDescriptor, state: _CallState,
    ) -> BackendResult[T]:
        """Invoke one backend and record the outcome; only cancellation escapes."""
        if kind is BackendKind.LOCAL:
            state.local_attempted = True
        start = time.monotonic()
        entered = False

        try:
            if not backend.is_available():
                result: BackendResult[Any] = BackendResult.failure(
                    ErrorKind.UNAVAILABLE, f"{backend.name} is not available",
                )
            else:
                limit = self._limits.get(kind)
                async with limit if limit is not None else contextlib.nullcontext():
                    start = time.monotonic()
                    entered = True
                    result = await backend.invoke(descriptor)
                if not isinstance(result, BackendResult):
                    raise TypeError(f"{backend.name} returned {type(result).__name__}, not BackendResult")
        except asyncio.CancelledError:
            if not state.interrupted:
                # The backend's own work was cancelled, not this route.
                result = BackendResult.failure(
                    ErrorKind.PROCESSING_FAILED, f"{backend.name} was cancelled internally",
                )
            else:
                if entered:
                    self._record(kind, BackendResult.failure(state.interrupt), time.monotonic() - start)
                else:
                    logger.debug(f"Backend {kind.value} cancelled while queued, not recorded")
                raise
        except BackendError as e:
            result = BackendResult.failure(e.kind, str(e))
        except Exception as e:
            result = BackendResult.failure(ErrorKind.PROCESSING_FAILED, str(e))

        latency = time.monotonic() - start
        if result.processing_time is None:
            result = dataclasses.replace(result, processing_time=latency)
        if not result.succeeded:
            logger.warning(
                f"Backend {kind.value} ({backend.name}) failed in {latency * 1000:.0f}ms: "
                f"{result.reason}"
            )
        self._record(kind, result, latency)
        return result

    def _record(self, kind: BackendKind, result: BackendResult, latency: float) -> None:
        try:
            self._monitor.record(
                kind, result.succeeded, latency, result.confidence,
                result.cost, result.error_kind,
            )
        except Exception as e:
            logger.debug(f"Telemetry record dropped: {e}")

    @staticmethod
    def _wrap(result: BackendResult[T], source: BackendKind, state: _CallState) -> RoutingResult[T]:
        return RoutingResult(
            data=result.data,
            source=source,
            confidence=result.confidence,
            processing_time=time.monotonic() - state.started,
            fallback_used=state.local_attempted and source is not BackendKind.LOCAL,
        )
