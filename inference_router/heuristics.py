"""Task complexity and device capability heuristics.

Both signals feed the Auto strategy's one-shot branch between NativeFirst
and Hybrid. They are recomputed on every route call.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import psutil
from loguru import logger

from inference_router.models import TaskDescriptor

# Unknown or empty payloads get a mid score; underestimating could pick the
# resource-constrained path for a hard task.
DEFAULT_COMPLEXITY = 0.5

# Raw audio is assumed to be 16 kHz, one byte per sample.
AUDIO_BYTES_PER_SECOND = 16000.0


class ComplexityAssessor:
    """Deterministic, pure estimate of how hard a task is, in [0, 1]."""

    def assess(self, descriptor: TaskDescriptor) -> float:
        if descriptor.complexity_hint is not None:
            return descriptor.complexity_hint

        payload = descriptor.payload
        if isinstance(payload, (bytes, bytearray, memoryview)):
            return self._assess_audio(len(payload))
        if isinstance(payload, str):
            return self._assess_text(payload)
        return DEFAULT_COMPLEXITY

    @staticmethod
    def _assess_audio(size: int) -> float:
        if size == 0:
            return DEFAULT_COMPLEXITY
        complexity = 0.0

        if size > 1_000_000:
            complexity += 0.4
        elif size > 100_000:
            complexity += 0.2

        duration = size / AUDIO_BYTES_PER_SECOND
        if duration > 30:
            complexity += 0.4
        elif duration > 10:
            complexity += 0.2

        return min(complexity, 1.0)

    @staticmethod
    def _assess_text(text: str) -> float:
        if not text.strip():
            return DEFAULT_COMPLEXITY
        complexity = 0.0

        length = len(text)
        if length > 200:
            complexity += 0.4
        elif length > 50:
            complexity += 0.2

        words = len(text.split())
        if words > 30:
            complexity += 0.4
        elif words > 5:
            complexity += 0.2

        symbols = sum(1 for ch in text if not ch.isalnum() and not ch.isspace())
        if symbols > 10:
            complexity += 0.2

        return min(complexity, 1.0)


class CapabilityEstimator(ABC):
    """Estimate of how well the local runtime can handle inference, in [0, 1]."""

    @abstractmethod
    def estimate(self) -> float:
        ...


class StaticCapabilityEstimator(CapabilityEstimator):
    """Fixed capability score; the signal never changes during the process."""

    def __init__(self, value: float = 0.8):
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"capability must be within [0, 1], got {value}")
        self._value = value

    def estimate(self) -> float:
        return self._value


def _on_battery_saver(low_battery_percent: float = 20.0) -> bool:
    """True when running unplugged on a nearly drained battery."""
    try:
        battery = psutil.sensors_battery()
    except (AttributeError, NotImplementedError, OSError):
        return False
    if battery is None or battery.power_plugged:
        return False
    return battery.percent < low_battery_percent


class HostCapabilityEstimator(CapabilityEstimator):
    """Score the host from CPU count, memory and power state.

    Host signals are read at most once per ``refresh_interval`` seconds.
    """

    def __init__(
        self,
        refresh_interval: float = 60.0,
        *,
        cpu_count: Callable[[], int | None] | None = None,
        total_memory: Callable[[], int] | None = None,
        power_saving: Callable[[], bool] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._refresh_interval = refresh_interval
        self._cpu_count = cpu_count or (lambda: psutil.cpu_count(logical=True))
        self._total_memory = total_memory or (lambda: psutil.virtual_memory().total)
        self._power_saving = power_saving or _on_battery_saver
        self._clock = clock
        self._cached: float | None = None
        self._measured_at = 0.0

    def estimate(self) -> float:
        now = self._clock()
        if self._cached is None or now - self._measured_at >= self._refresh_interval:
            self._cached = self._measure()
            self._measured_at = now
        return self._cached

    def _measure(self) -> float:
        capability = 0.5

        cpus = self._cpu_count() or 1
        if cpus >= 8:
            capability += 0.35
        elif cpus >= 6:
            capability += 0.25
        elif cpus >= 4:
            capability += 0.15
        elif cpus >= 2:
            capability += 0.05

        memory_gb = self._total_memory() / (1024 ** 3)
        if memory_gb >= 8:
            capability += 0.25
        elif memory_gb >= 6:
            capability += 0.20
        elif memory_gb >= 4:
            capability += 0.15
        elif memory_gb >= 3:
            capability += 0.10
        elif memory_gb >= 2:
            capability += 0.05

        power_saving = self._power_saving()
        if power_saving:
            capability *= 0.7

        capability = min(capability, 1.0)
        logger.debug(
            f"Capability: {capability:.2f} (cpus={cpus}, memory={memory_gb:.1f}GB, "
            f"power_saving={power_saving})"
        )
        return capability
