"""
Temperature -> reasoning effort mapping.

The host speaks in temperature; Codex only understands a discrete
``model_reasoning_effort``. The relationship is inverse: a low temperature asks
for deterministic output, which we translate into more deliberation.
"""

from enum import Enum
from typing import Optional


class EffortLevel(str, Enum):
    """Codex ``model_reasoning_effort`` values."""

    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    XHIGH = "xhigh"


DEFAULT_EFFORT = EffortLevel.MEDIUM

# Upper bound (inclusive) -> effort, ascending. Anything above the last bound is MINIMAL.
_EFFORT_BRACKETS: list[tuple[float, EffortLevel]] = [
    (0.2, EffortLevel.XHIGH),
    (0.4, EffortLevel.HIGH),
    (0.6, EffortLevel.MEDIUM),
    (0.8, EffortLevel.LOW),
]


def map_temperature_to_effort(temperature: Optional[float] = None) -> EffortLevel:
    """
    Map a temperature onto a reasoning effort level.

    Args:
        temperature: Client temperature, nominally 0.0-1.0. None means unset.

    Returns:
        EffortLevel. Bracket boundaries (0.2, 0.4, 0.6, 0.8) resolve to the
        higher-effort side. Values outside 0.0-1.0 clamp naturally to the
        outer brackets.
    """
    if temperature is None:
        return DEFAULT_EFFORT
    for upper_bound, effort in _EFFORT_BRACKETS:
        if temperature <= upper_bound:
            return effort
    return EffortLevel.MINIMAL
