"""
Content generators.

The live generator calls the model through the OpenAI SDK, pointed at
Anthropic's OpenAI-compatible endpoint. The mock generator returns canned
text with the same response shape and is used when no API key is set.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from openai import OpenAI, OpenAIError

from ..core.token_counter import TokenUsage, estimate_tokens

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_BASE_URL = "https://api.anthropic.com/v1/"
DEFAULT_MAX_TOKENS = 2000
MOCK_MODEL = "mock-model"


class GenerationError(Exception):
    """Raised when the model API fails or returns an unusable response."""


@dataclass(frozen=True)
class GeneratedContent:
    """Generated text with its token usage and the model that produced it."""
    content: str
    usage: TokenUsage
    model: str


class ContentGenerator(ABC):
    """Turns a prompt into generated text."""

    @abstractmethod
    def generate(self, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> GeneratedContent:
        """Generate content for a prompt.

        Raises:
            GenerationError: If generation fails
        """


class LiveContentGenerator(ContentGenerator):
    """Generator backed by the model API.

    Failures are raised as GenerationError with a readable message; nothing
    is retried.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: Optional[str] = DEFAULT_BASE_URL
    ):
        """Initialize the live generator.

        Args:
            api_key: API key for the model provider (required)
            model: Model name
            base_url: OpenAI-compatible endpoint of the provider

        Raises:
            ValueError: If api_key or model is missing/empty
        """
        if not api_key or not api_key.strip():
            raise ValueError("api_key is required and cannot be empty")
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.client = OpenAI(api_key=api_key, base_url=base_url)

    def generate(self, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> GeneratedContent:
        if not prompt:
            raise ValueError("prompt is required and cannot be empty")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}]
            )
        except OpenAIError as e:
            logger.error("Error calling model API: %s", e)
            raise GenerationError(f"API Error: {e}") from e

        try:
            content = response.choices[0].message.content
            usage = response.usage
            token_usage = TokenUsage(
                input_tokens=usage.prompt_tokens,
                output_tokens=usage.completion_tokens
            )
        except (AttributeError, IndexError, TypeError) as e:
            raise GenerationError(f"Malformed API response: {e}") from e

        if content is None:
            raise GenerationError("Malformed API response: missing content")

        return GeneratedContent(
            content=content,
            usage=token_usage,
            model=response.model or self.model
        )


MOCK_NOTE = (
    "*Note: This is a mock response. Set your Anthropic API key for real "
    "AI-generated content.*"
)

MOCK_USER_STORY = """**User Story:**
As a user,
I want to be able to accomplish this feature,
So that I can gain value and achieve my goals.

**Acceptance Criteria:**
- The feature should work as expected
- The UI should be intuitive and user-friendly
- All edge cases should be handled gracefully
- Performance should be optimized

**Technical Notes:**
- Consider using modern web technologies
- Ensure proper error handling
- Add appropriate logging
- Write comprehensive tests

**Estimated Story Points:** 5"""

MOCK_WORKFLOW_STEPS = (
    ("Discover the feature", "P1", 3),
    ("Complete the core task", "P0", 5),
    ("Review the outcome", "P2", 2),
)

MOCK_PRD = """# Product Requirements Document

## Executive Summary
This document outlines the requirements for building a new feature that will deliver significant value to our users and business.

## Problem Statement
Users currently face challenges that this product will solve, leading to improved efficiency and satisfaction.

## Goals
- Increase user engagement by 20%
- Improve key metrics
- Deliver exceptional user experience

## Non-Goals
- Features that are out of scope for v1
- Integration with legacy systems

## Key Features
1. **Core Functionality**: The main feature that users need
2. **Supporting Features**: Additional capabilities that enhance the experience
3. **Admin Tools**: Management and configuration options

## Success Metrics
- User adoption rate > 60%
- Task completion rate > 85%
- User satisfaction score > 4.5/5

## Technical Requirements
- Responsive design for all devices
- Performance: page load < 2 seconds
- Security: follow OWASP best practices

## Launch Plan
- Phase 1: Internal alpha testing
- Phase 2: Beta with select users
- Phase 3: Full public launch

## Risks & Mitigations
- **Risk**: Technical complexity
  **Mitigation**: Incremental development approach"""


class MockContentGenerator(ContentGenerator):
    """Deterministic stand-in used when no API key is configured."""

    def generate(self, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> GeneratedContent:
        lowered = (prompt or "").lower()

        if "user workflow" in lowered:
            content = _mock_workflow()
        elif "user story" in lowered:
            content = f"{MOCK_USER_STORY}\n\n---\n{MOCK_NOTE}"
        elif "product requirements document" in lowered or "prd" in lowered:
            content = f"{MOCK_PRD}\n\n---\n{MOCK_NOTE}"
        else:
            content = "Mock response generated. Set your Anthropic API key for real AI content."

        return GeneratedContent(
            content=content,
            usage=TokenUsage(
                input_tokens=estimate_tokens(prompt),
                output_tokens=estimate_tokens(content)
            ),
            model=MOCK_MODEL
        )


def _mock_workflow() -> str:
    stories = []
    for title, priority, points in MOCK_WORKFLOW_STEPS:
        stories.append(
            f"## {title}\n\n"
            f"**User Story:**\nAs a user,\nI want to {title.lower()},\n"
            "So that I can move through the workflow without friction.\n\n"
            f"**Priority:** {priority}\n\n"
            "**Acceptance Criteria:**\n"
            "- The step is reachable from the previous one\n"
            "- Errors are shown inline\n\n"
            f"**Estimated Story Points:** {points}"
        )
    return "\n\n---\n\n".join(stories)


def create_generator(
    api_key: Optional[str],
    model: str = DEFAULT_MODEL,
    base_url: Optional[str] = DEFAULT_BASE_URL
) -> ContentGenerator:
    """Select the live generator when an API key is set, else the mock.

    Args:
        api_key: API key from configuration, may be empty
        model: Model name for the live generator
        base_url: Endpoint for the live generator

    Returns:
        ContentGenerator instance
    """
    if not api_key:
        logger.warning("No API key configured. Using mock responses.")
        return MockContentGenerator()
    return LiveContentGenerator(api_key=api_key, model=model, base_url=base_url)
