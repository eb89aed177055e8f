"""Rule-based formatting strategies."""
from .formatting import DEFAULT_STRATEGIES, FormatStrategy

__all__ = [
    "DEFAULT_STRATEGIES",
    "FormatStrategy",
]
