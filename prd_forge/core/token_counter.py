"""
Token counting and usage tracking.

Holds token usage reported by the model API and a rough estimator for
responses produced without one.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenUsage:
    """Token usage data for cost calculation."""
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens


def estimate_tokens(text: str) -> int:
    """Estimate a token count as one token per four characters."""
    return len(text or "") // 4
