"""
Pricing calculations.

Converts token usage into an estimated dollar cost using fixed rates.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .token_counter import TokenUsage


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing, expressed per million tokens."""
    input_cost_per_1m: Decimal
    output_cost_per_1m: Decimal


# Fixed pricing for the default generation model
DEFAULT_PRICING = ModelPricing(
    input_cost_per_1m=Decimal("3.00"),
    output_cost_per_1m=Decimal("15.00")
)

# Per-generation estimates for records written before costs were tracked
FALLBACK_COST_USER_STORY = 0.006
FALLBACK_COST_OTHER = 0.033


def calculate_cost(usage: Optional[TokenUsage], pricing: ModelPricing = DEFAULT_PRICING) -> float:
    """Calculate the cost of one model call.

    Args:
        usage: Token usage reported for the call, or None
        pricing: Rates to apply

    Returns:
        Estimated cost in dollars, 0.0 when usage is missing
    """
    if usage is None:
        return 0.0

    million = Decimal("1000000")
    input_cost = Decimal(usage.input_tokens or 0) * pricing.input_cost_per_1m / million
    output_cost = Decimal(usage.output_tokens or 0) * pricing.output_cost_per_1m / million

    return float(input_cost + output_cost)


def fallback_cost(generation_type: str) -> float:
    """Estimated cost of a generation that has no recorded cost."""
    if generation_type == "user_story":
        return FALLBACK_COST_USER_STORY
    return FALLBACK_COST_OTHER
