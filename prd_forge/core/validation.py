"""
Generated content validation.

Quality checks on model output. A failed check is a warning for the
caller to log, not an error.
"""

from dataclasses import dataclass, field
from typing import Dict

MIN_CONTENT_LENGTH = 100

STRUCTURE_MARKERS = {
    "user_story": ("User Story", "Job Story", "Feature:", "As a"),
    "user_story_workflow": ("User Story", "Job Story", "Feature:", "As a"),
    "prd": ("#", "Product", "Requirements", "Goals"),
}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one piece of generated content."""
    passed: bool
    checks: Dict[str, bool] = field(default_factory=dict)

    @property
    def score(self) -> int:
        """1 when every check passed, else 0."""
        return 1 if self.passed else 0

    @property
    def failed_checks(self):
        return [name for name, ok in self.checks.items() if not ok]


def validate_content(content: str, content_type: str) -> ValidationResult:
    """Check generated content for emptiness, length and expected structure.

    Args:
        content: Generated text
        content_type: "user_story", "prd" or "user_story_workflow"

    Returns:
        ValidationResult with one boolean per check
    """
    content = content or ""
    markers = STRUCTURE_MARKERS.get(content_type, ())

    checks = {
        "not_empty": len(content.strip()) > 0,
        "min_length": len(content) >= MIN_CONTENT_LENGTH,
        "has_structure": any(marker in content for marker in markers),
    }

    return ValidationResult(passed=all(checks.values()), checks=checks)
