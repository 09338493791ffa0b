"""Rolling telemetry for backend invocations.

Writers (the router) only append to a queue; aggregation happens when a
reader drains it or when a writer wins a non-blocking lock attempt, so a
``record`` call never waits on a reader.
"""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from inference_router.models import BackendKind, ErrorKind

# Queue length at which a writer tries to fold pending samples in itself.
_DRAIN_BATCH = 64


@dataclass(frozen=True)
class InvocationSample:
    """One backend invocation as seen by the monitor."""

    kind: BackendKind
    succeeded: bool
    latency: float
    confidence: float
    cost: float
    error_kind: ErrorKind | None
    timestamp: float


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time aggregate for one backend kind."""

    success_rate: float = 0.0
    average_latency: float = 0.0
    average_confidence: float = 0.0
    sample_count: int = 0
    total_cost: float = 0.0


@dataclass(frozen=True)
class PerformanceReport:
    """Both snapshots plus tuning hints derived from them."""

    generated_at: float
    local: MetricsSnapshot
    remote: MetricsSnapshot
    recommendations: list[str] = field(default_factory=list)


@dataclass
class _Totals:
    attempts: int = 0
    successes: int = 0
    latency: float = 0.0
    confidence: float = 0.0
    cost: float = 0.0

    def add(self, sample: InvocationSample) -> None:
        self.attempts += 1
        self.latency += sample.latency
        self.cost += sample.cost
        if sample.succeeded:
            self.successes += 1
            self.confidence += sample.confidence

    def snapshot(self) -> MetricsSnapshot:
        if not self.attempts:
            return MetricsSnapshot()
        return MetricsSnapshot(
            success_rate=self.successes / self.attempts,
            average_latency=self.latency / self.attempts,
            average_confidence=self.confidence / self.successes if self.successes else 0.0,
            sample_count=self.attempts,
            total_cost=self.cost,
        )


class PerformanceMonitor:
    """Append-only telemetry store; one instance is shared by a router's calls."""

    def __init__(self, history_size: int = 100, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._pending: deque[InvocationSample] = deque()
        self._lock = threading.Lock()
        self._totals: dict[BackendKind, _Totals] = {kind: _Totals() for kind in BackendKind}
        self._history: deque[InvocationSample] = deque(maxlen=history_size)

    def record(
        self,
        kind: BackendKind,
        succeeded: bool,
        latency: float,
        confidence: float,
        cost: float = 0.0,
        error_kind: ErrorKind | None = None,
    ) -> None:
        """Queue one invocation outcome. Never blocks."""
        sample = InvocationSample(
            kind=kind, succeeded=succeeded, latency=latency,
            confidence=confidence, cost=cost, error_kind=error_kind,
            timestamp=self._clock(),
        )
        self._pending.append(sample)
        logger.debug(
            f"Telemetry: {kind.value} success={succeeded} latency={latency:.3f}s "
            f"confidence={confidence:.2f} cost={cost}"
        )
        if len(self._pending) >= _DRAIN_BATCH and self._lock.acquire(blocking=False):
            try:
                self._drain()
            finally:
                self._lock.release()

    def _drain(self) -> None:
        # Caller holds self._lock.
        while True:
            try:
                sample = self._pending.popleft()
            except IndexError:
                return
            self._totals[sample.kind].add(sample)
            self._history.append(sample)

    def snapshot(self, kind: BackendKind) -> MetricsSnapshot:
        with self._lock:
            self._drain()
            return self._totals[kind].snapshot()

    def history(
        self, kind: BackendKind | None = None, within: float | None = None,
    ) -> list[InvocationSample]:
        """Most recent samples, optionally filtered by kind and age in seconds."""
        with self._lock:
            self._drain()
            samples = list(self._history)
        if kind is not None:
            samples = [s for s in samples if s.kind == kind]
        if within is not None:
            cutoff = self._clock() - within
            samples = [s for s in samples if s.timestamp >= cutoff]
        return samples

    def trend(
        self, kind: BackendKind, buckets: int = 24, bucket_seconds: float = 3600.0,
    ) -> list[float]:
        """Success rate per time bucket, oldest first; empty buckets read 0.0."""
        now = self._clock()
        samples = self.history(kind, within=buckets * bucket_seconds)
        attempts = [0] * buckets
        successes = [0] * buckets
        for s in samples:
            age = int(max(now - s.timestamp, 0.0) // bucket_seconds)
            if age >= buckets:
                continue
            index = buckets - 1 - age
            attempts[index] += 1
            successes[index] += s.succeeded
        return [ok / n if n else 0.0 for ok, n in zip(successes, attempts)]

    def report(self) -> PerformanceReport:
        local = self.snapshot(BackendKind.LOCAL)
        remote = self.snapshot(BackendKind.REMOTE)
        recommendations: list[str] = []

        if local.sample_count and remote.sample_count:
            if local.success_rate < 0.7 and remote.success_rate > 0.9:
                recommendations.append(
                    "Local backend success rate is low; consider the remote_first strategy."
                )
        if local.sample_count and local.success_rate > 0.9:
            recommendations.append(
                "Local backend is reliable; native_first keeps remote cost down."
            )

        confident = [s for s in (local, remote) if s.sample_count]
        if confident:
            overall = sum(s.average_confidence for s in confident) / len(confident)
            if overall < 0.8:
                recommendations.append(
                    "Average confidence is low; consider the hybrid strategy."
                )

        return PerformanceReport(
            generated_at=self._clock(), local=local, remote=remote,
            recommendations=recommendations,
        )

    def reset(self) -> None:
        with self._lock:
            self._pending.clear()
            self._history.clear()
            self._totals = {kind: _Totals() for kind in BackendKind}
        logger.info("Performance statistics reset")
