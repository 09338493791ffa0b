"""inference-router: local/remote inference routing with confidence-gated fallback."""

from inference_router.backends import FunctionBackend
from inference_router.config import RouterConfig
from inference_router.errors import (
    AllBackendsFailed,
    BackendError,
    BackendFailed,
    BackendUnavailable,
    InvalidConfiguration,
    RouterError,
    RoutingCancelled,
)
from inference_router.heuristics import (
    CapabilityEstimator,
    ComplexityAssessor,
    HostCapabilityEstimator,
    StaticCapabilityEstimator,
)
from inference_router.models import (
    Backend,
    BackendKind,
    BackendResult,
    CancellationToken,
    ErrorKind,
    RoutingResult,
    TaskDescriptor,
)
from inference_router.monitor import MetricsSnapshot, PerformanceMonitor, PerformanceReport
from inference_router.router import Router
from inference_router.strategies import Strategy, resolve_strategy

__all__ = [
    "AllBackendsFailed",
    "Backend",
    "BackendError",
    "BackendFailed",
    "BackendKind",
    "BackendResult",
    "BackendUnavailable",
    "CancellationToken",
    "CapabilityEstimator",
    "ComplexityAssessor",
    "ErrorKind",
    "FunctionBackend",
    "HostCapabilityEstimator",
    "InvalidConfiguration",
    "MetricsSnapshot",
    "PerformanceMonitor",
    "PerformanceReport",
    "Router",
    "RouterConfig",
    "RouterError",
    "RoutingCancelled",
    "RoutingResult",
    "StaticCapabilityEstimator",
    "Strategy",
    "TaskDescriptor",
    "resolve_strategy",
]
