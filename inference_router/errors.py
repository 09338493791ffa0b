"""Exceptions raised by backends and the router."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from inference_router.models import BackendKind, ErrorKind


class BackendError(Exception):
    """Raised by a backend that could not produce a result."""

    def __init__(self, kind: ErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind


class BackendUnavailable(BackendError):
    """The backend cannot run at all (missing capability or permission)."""

    def __init__(self, message: str = "", *, permission_denied: bool = False):
        from inference_router.models import ErrorKind

        kind = ErrorKind.PERMISSION_DENIED if permission_denied else ErrorKind.UNAVAILABLE
        super().__init__(kind, message)


class BackendFailed(BackendError):
    """The backend ran but failed: processing error, network error or timeout."""

    def __init__(self, message: str = "", kind: ErrorKind | None = None):
        from inference_router.models import ErrorKind

        super().__init__(kind or ErrorKind.PROCESSING_FAILED, message)


class InsufficientConfidence(Exception):
    """Internal fallback signal: a result scored below the configured gate.

    Never surfaces to callers; it only shows up as ``fallback_used`` on the
    eventual result or as a failure entry inside ``AllBackendsFailed``.
    """

    def __init__(self, confidence: float, threshold: float):
        super().__init__(f"insufficient confidence {confidence:.2f} < {threshold:.2f}")
        self.confidence = confidence
        self.threshold = threshold


class RouterError(Exception):
    """Base class for errors surfaced by ``Router.route``."""


class AllBackendsFailed(RouterError):
    """Every attempted backend failed."""

    def __init__(self, failures: dict[BackendKind, str]):
        details = ", ".join(f"{kind.value}: {reason}" for kind, reason in failures.items())
        super().__init__(f"All backends failed ({details})")
        self.failures = failures


class RoutingCancelled(RouterError):
    """The caller's deadline expired or its cancellation token fired."""

    def __init__(self, reason: str = "cancelled"):
        super().__init__(f"Routing cancelled: {reason}")
        self.reason = reason


class InvalidConfiguration(RouterError, ValueError):
    """Malformed descriptor, threshold or strategy; raised before any backend runs."""
