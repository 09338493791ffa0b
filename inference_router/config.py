"""Router configuration value object."""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from inference_router.errors import InvalidConfiguration
from inference_router.strategies import Strategy, resolve_strategy

DEFAULT_CONFIDENCE_THRESHOLD = 0.85


@dataclass(frozen=True)
class RouterConfig:
    """Settings read once by the caller and passed to the router.

    The Auto strategy takes the NativeFirst path only when capability is at
    least ``auto_capability_threshold`` and complexity is strictly below
    ``auto_complexity_threshold``; otherwise it runs Hybrid.
    """

    strategy: Strategy = Strategy.NATIVE_FIRST
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    auto_capability_threshold: float = 0.7
    auto_complexity_threshold: float = 0.6

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategy", resolve_strategy(self.strategy))
        for name in ("confidence_threshold", "auto_capability_threshold", "auto_complexity_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidConfiguration(f"{name} must be a number, got {value!r}")
            if not 0.0 <= value <= 1.0:
                raise InvalidConfiguration(f"{name} must be within [0, 1], got {value}")

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "RouterConfig":
        """Build a config from a settings mapping, ignoring unrelated keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in settings.items() if k in known and v is not None}
        return cls(**values)
