"""
Free-tier usage limits.

Compares the session's generation count with a per-type limit before a
generation runs, and produces the upgrade warnings shown afterwards.

The gate is advisory: it reads a client-side counter and has no
server-side authority behind it.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .recorder import UsageCounter

TYPE_LABELS = {
    "user_story": "user story",
    "prd": "PRD",
    "user_story_workflow": "workflow",
}

TYPE_PLURALS = {
    "user_story": "user stories",
    "prd": "PRDs",
    "user_story_workflow": "workflows",
}

DEFAULT_LIMITS: Dict[str, int] = {"user_story": 5, "prd": 3}
DEFAULT_WARNINGS: Dict[str, Tuple[int, ...]] = {"user_story": (3, 4), "prd": (2, 3)}


class FreeTierLimitReached(Exception):
    """Raised when a session has used all free generations of a type."""
    def __init__(self, message: str, generation_type: str, used: int, limit: int):
        super().__init__(message)
        self.generation_type = generation_type
        self.used = used
        self.limit = limit


@dataclass(frozen=True)
class GateDecision:
    """Result of checking the free-tier gate for one generation type."""
    allowed: bool
    used: int
    limit: Optional[int]
    message: str = ""

    @property
    def remaining(self) -> Optional[int]:
        if self.limit is None:
            return None
        return max(self.limit - self.used, 0)


@dataclass
class FreeTierGate:
    """Per-session generation limits.

    Types without a configured limit are never refused. A failed count is
    treated as the limit being reached.
    """
    counter: UsageCounter
    limits: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_LIMITS))
    warnings: Dict[str, Tuple[int, ...]] = field(default_factory=lambda: dict(DEFAULT_WARNINGS))

    def check(self, generation_type: str) -> GateDecision:
        """Decide whether another generation of this type may run."""
        limit = self.limits.get(generation_type)
        if limit is None:
            return GateDecision(allowed=True, used=0, limit=None)

        result = self.counter.count_by_type(generation_type)
        if not result.ok:
            return GateDecision(
                allowed=False,
                used=limit,
                limit=limit,
                message="Usage could not be verified. Please try again later."
            )

        if result.count >= limit:
            return GateDecision(
                allowed=False,
                used=result.count,
                limit=limit,
                message=limit_message(generation_type, limit)
            )
        return GateDecision(allowed=True, used=result.count, limit=limit)

    def enforce(self, generation_type: str) -> GateDecision:
        """Check the gate and raise FreeTierLimitReached when refused."""
        decision = self.check(generation_type)
        if not decision.allowed:
            raise FreeTierLimitReached(
                decision.message,
                generation_type=generation_type,
                used=decision.used,
                limit=decision.limit
            )
        return decision

    def warning_for(self, generation_type: str, count: int) -> Optional[str]:
        """Return the upgrade prompt for a post-generation count, if any."""
        if count not in self.warnings.get(generation_type, ()):
            return None
        limit = self.limits.get(generation_type)
        if limit is None:
            return None

        label = TYPE_LABELS.get(generation_type, generation_type)
        remaining = limit - count
        if remaining > 1:
            return f"You have {remaining} free {label} generations left. Sign up for unlimited access!"
        if remaining == 1:
            return f"This is your last free {label} generation. Sign up to keep creating!"
        return f"You've used all your free {label} generations. Sign up to keep creating!"


def limit_message(generation_type: str, limit: int) -> str:
    label = TYPE_LABELS.get(generation_type, generation_type)
    plural = TYPE_PLURALS.get(generation_type, generation_type)
    return (
        f"You've used your {limit} free {label} generations! "
        f"Sign up to continue generating unlimited {plural}."
    )
