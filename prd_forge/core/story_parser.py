"""
User story parsing.

Extracts the structured fields needed for a Notion page from a block of
generated user story text.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

_HEADING_RE = re.compile(r"^#{2,}\s*")
_STORY_POINTS_RE = re.compile(r"(?:\*\*)?Estimated Story Points:(?:\*\*)?\s*(\d+)", re.IGNORECASE)
_PRIORITY_RE = re.compile(r"(?:\*\*)?Priority:(?:\*\*)?\s*(P[0-2])\b", re.IGNORECASE)
_CRITERIA_RE = re.compile(
    r"(?:\*\*)?(?:Acceptance|Success) Criteria:(?:\*\*)?(.*?)(?:\*\*|\Z)",
    re.IGNORECASE | re.DOTALL
)


@dataclass(frozen=True)
class ParsedStory:
    """Structured view of one generated story."""
    title: str
    full_content: str
    type: str = "scrum"
    story_points: Optional[int] = None
    priority: Optional[str] = None
    acceptance_criteria: List[str] = field(default_factory=list)


def parse_story(text: str) -> ParsedStory:
    """Parse a generated story.

    Title is the first "##" heading, or the first non-blank line when there
    is none. Type is "jtbd" for job stories, "simple" for feature-style
    stories and "scrum" otherwise.

    Args:
        text: Generated story text

    Returns:
        ParsedStory; the input is kept verbatim in full_content
    """
    text = text or ""
    return ParsedStory(
        title=_extract_title(text),
        full_content=text,
        type=_classify(text),
        story_points=_extract_story_points(text),
        priority=_extract_priority(text),
        acceptance_criteria=_extract_criteria(text),
    )


def _extract_title(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    for line in lines:
        if line.startswith("##"):
            return _HEADING_RE.sub("", line).strip()
    return lines[0] if lines else ""


def _classify(text: str) -> str:
    if "Job Story:" in text or "When [" in text:
        return "jtbd"
    if "**Feature:**" in text:
        return "simple"
    return "scrum"


def _extract_story_points(text: str) -> Optional[int]:
    match = _STORY_POINTS_RE.search(text)
    return int(match.group(1)) if match else None


def _extract_priority(text: str) -> Optional[str]:
    match = _PRIORITY_RE.search(text)
    return match.group(1).upper() if match else None


def _extract_criteria(text: str) -> List[str]:
    match = _CRITERIA_RE.search(text)
    if not match:
        return []
    return [
        re.sub(r"^-\s*", "", line.strip()).strip()
        for line in match.group(1).splitlines()
        if line.strip().startswith("-")
    ]


def split_stories(text: str) -> List[str]:
    """Split a multi-story response on "---" separator lines.

    Empty blocks are dropped and each block is stripped.
    """
    blocks = re.split(r"^[ \t]*-{3,}[ \t]*$", text or "", flags=re.MULTILINE)
    return [block.strip() for block in blocks if block.strip()]
