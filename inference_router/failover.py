"""Sequential primary → fallback execution."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from inference_router.errors import AllBackendsFailed, InsufficientConfidence
from inference_router.models import Backend, BackendKind, BackendResult, TaskDescriptor

Invoker = Callable[[BackendKind, Backend, TaskDescriptor], Awaitable[BackendResult]]


@dataclass
class BackendTier:
    """A single tier in the fallback chain."""

    kind: BackendKind
    backend: Backend
    min_confidence: float | None = None  # None: result is authoritative, no gate

    def accept(self, result: BackendResult) -> BackendResult:
        """Return the result if it clears this tier's gate (inclusive)."""
        if self.min_confidence is not None and result.confidence < self.min_confidence:
            raise InsufficientConfidence(result.confidence, self.min_confidence)
        return result


class FallbackChain:
    """Try backends in order until one produces an acceptable result.

    Each tier is resolved before the next one starts, and no tier is
    invoked more than once.
    """

    def __init__(self, invoke: Invoker) -> None:
        self._invoke = invoke

    async def try_backends(
        self, chain: list[BackendTier], descriptor: TaskDescriptor,
    ) -> tuple[BackendResult[Any], BackendTier]:
        """Attempt each tier in sequence.

        Returns:
            Tuple of (accepted_result, tier_that_produced_it).

        Raises:
            AllBackendsFailed: If every tier failed or fell below its gate.
        """
        failures: dict[BackendKind, str] = {}

        for position, tier in enumerate(chain):
            result = await self._invoke(tier.kind, tier.backend, descriptor)
            has_next = position + 1 < len(chain)

            if not result.succeeded:
                reason = result.reason
                failures[tier.kind] = reason
                if has_next:
                    logger.info(f"Backend {tier.kind.value} failed ({reason}), falling back")
                continue

            try:
                return tier.accept(result), tier
            except InsufficientConfidence as e:
                failures[tier.kind] = str(e)
                if has_next:
                    logger.info(f"Backend {tier.kind.value} {e}, falling back")

        raise AllBackendsFailed(failures)
