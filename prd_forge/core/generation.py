"""
Generation workflow.

Runs one generation end to end: free-tier gate, prompt, model call,
validation, cost, tracking and the post-generation usage warning.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..sdk.generator import ContentGenerator
from .limits import FreeTierGate
from .pricing import calculate_cost
from .prompts import (
    PrdForm,
    generate_prd_prompt,
    generate_user_story_prompt,
    generate_workflow_prompt,
)
from .recorder import AnalyticsRecorder, GenerationData, UsageCounter
from .story_parser import split_stories
from .token_counter import TokenUsage
from .validation import ValidationResult, validate_content

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = {"user_story": 2000, "prd": 4000, "user_story_workflow": 4000}


@dataclass
class GenerationOutcome:
    """Result of one generation as presented to the user."""
    type: str
    template: str
    content: str
    usage: TokenUsage
    model: str
    cost: float
    validation: ValidationResult
    generation_id: Optional[str] = None
    used: Optional[int] = None
    limit: Optional[int] = None
    warning: Optional[str] = None
    stories: List[str] = field(default_factory=list)


class GenerationService:
    """Generates user stories, workflows and PRDs for the current session."""

    def __init__(
        self,
        generator: ContentGenerator,
        recorder: AnalyticsRecorder,
        counter: UsageCounter,
        gate: FreeTierGate,
        max_tokens: Optional[dict] = None
    ):
        self.generator = generator
        self.recorder = recorder
        self.counter = counter
        self.gate = gate
        self.max_tokens = dict(DEFAULT_MAX_TOKENS)
        if max_tokens:
            self.max_tokens.update(max_tokens)

    def generate_user_story(self, feature_description: str, template: str = "scrum") -> GenerationOutcome:
        """Generate one user story from a feature description.

        Raises:
            ValueError: If the description is blank
            FreeTierLimitReached: If the session has no free user stories left
            GenerationError: If the model call fails
        """
        if not feature_description or not feature_description.strip():
            raise ValueError("Please describe your feature first")

        prompt = generate_user_story_prompt(feature_description, template)
        return self._run("user_story", template, prompt, feature_description)

    def generate_workflow(
        self,
        workflow_description: str,
        template: str = "scrum",
        story_count: int = 3
    ) -> GenerationOutcome:
        """Generate a batch of user stories for a workflow.

        The individual stories are returned in outcome.stories, ready for
        batch export.
        """
        if not workflow_description or not workflow_description.strip():
            raise ValueError("Please describe your workflow first")
        if story_count < 1:
            raise ValueError("story_count must be >= 1")

        prompt = generate_workflow_prompt(workflow_description, template, story_count)
        outcome = self._run("user_story_workflow", "workflow_batch", prompt, workflow_description)
        outcome.stories = split_stories(outcome.content)
        return outcome

    def generate_prd(self, form: PrdForm, template: str = "comprehensive") -> GenerationOutcome:
        """Generate a PRD from the PRD form.

        Raises:
            ValueError: If product name, problem statement or business goal is blank
            FreeTierLimitReached: If the session has no free PRDs left
            GenerationError: If the model call fails
        """
        missing = form.missing_required()
        if missing:
            raise ValueError(f"Missing required PRD fields: {', '.join(missing)}")

        prompt = generate_prd_prompt(form, template)
        return self._run("prd", template, prompt, prompt, business_goal=form.goal_text)

    def _run(
        self,
        generation_type: str,
        template: str,
        prompt: str,
        user_input: str,
        business_goal: Optional[str] = None
    ) -> GenerationOutcome:
        self.gate.enforce(generation_type)

        result = self.generator.generate(prompt, self.max_tokens.get(generation_type, 2000))

        validation = validate_content(result.content, generation_type)
        if not validation.passed:
            logger.warning(
                "Generated %s failed validation checks: %s",
                generation_type, ", ".join(validation.failed_checks)
            )

        cost = calculate_cost(result.usage)
        generation_id = self.recorder.record_generation(GenerationData(
            type=generation_type,
            template=template,
            input=user_input,
            output=result.content,
            business_goal=business_goal,
            usage=result.usage,
            cost=cost,
            model=result.model,
            validation_score=validation.score
        ))

        outcome = GenerationOutcome(
            type=generation_type,
            template=template,
            content=result.content,
            usage=result.usage,
            model=result.model,
            cost=cost,
            validation=validation,
            generation_id=generation_id,
            limit=self.gate.limits.get(generation_type)
        )

        count = self.counter.count_by_type(generation_type)
        if count.ok:
            outcome.used = count.count
            outcome.warning = self.gate.warning_for(generation_type, count.count)
        return outcome
