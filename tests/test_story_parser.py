"""
Unit tests for user story parsing.
"""

from prd_forge.core.story_parser import ParsedStory, parse_story, split_stories

SCRUM_STORY = """## Google sign-in

**User Story:**
As a returning user,
I want to log in with my Google account,
So that I don't need another password.

**Priority:** P1

**Acceptance Criteria:**
- A "Sign in with Google" button is shown
- New accounts are created on first sign-in
  - Existing accounts are linked by email

**Technical Notes:**
- Use OAuth 2.0

**Estimated Story Points:** 5"""


class TestParseStory:
    """Test field extraction."""
    
    def test_full_scrum_story(self):
        """Every field is extracted from a complete story."""
        story = parse_story(SCRUM_STORY)
        assert story.title == "Google sign-in"
        assert story.type == "scrum"
        assert story.story_points == 5
        assert story.priority == "P1"
        assert story.acceptance_criteria == [
            'A "Sign in with Google" button is shown',
            "New accounts are created on first sign-in",
            "Existing accounts are linked by email",
        ]
        assert story.full_content == SCRUM_STORY
    
    def test_title_prefers_heading(self):
        """A "##" heading wins over an earlier plain line."""
        story = parse_story("Intro line\n\n## Real title\nbody")
        assert story.title == "Real title"
    
    def test_title_falls_back_to_first_line(self):
        story = parse_story("\n\n  First line  \nSecond line")
        assert story.title == "First line"
    
    def test_deeper_heading_is_stripped(self):
        assert parse_story("### Checkout").title == "Checkout"
    
    def test_empty_text(self):
        story = parse_story("")
        assert story == ParsedStory(title="", full_content="")
        assert story.story_points is None
        assert story.acceptance_criteria == []
    
    def test_jtbd_classification(self):
        assert parse_story("**Job Story:**\nWhen I travel").type == "jtbd"
        assert parse_story("When [situation], I want to").type == "jtbd"
    
    def test_simple_classification(self):
        assert parse_story("**Feature:** Dark mode").type == "simple"
    
    def test_bold_story_points(self):
        """The bold label used by the prompts is recognised."""
        story = parse_story("Story\n**Estimated Story Points:** 5")
        assert story.story_points == 5
    
    def test_plain_story_points(self):
        assert parse_story("Story\nEstimated Story Points: 13").story_points == 13
    
    def test_missing_story_points_is_none(self):
        assert parse_story("Story without estimate").story_points is None
    
    def test_priority_only_p0_to_p2(self):
        assert parse_story("Priority: P0").priority == "P0"
        assert parse_story("Priority: P3").priority is None
    
    def test_success_criteria_section(self):
        """JTBD success criteria are read like acceptance criteria."""
        text = "**Job Story:**\nWhen [x]\n\n**Success Criteria:**\n- Fast\n- Clear\n\n**Forces/Constraints:**\n- Budget"
        story = parse_story(text)
        assert story.acceptance_criteria == ["Fast", "Clear"]
    
    def test_parsing_is_pure(self):
        """The same input always gives the same result."""
        assert parse_story(SCRUM_STORY) == parse_story(SCRUM_STORY)


class TestSplitStories:
    """Test splitting multi-story responses."""
    
    def test_split_on_separator_lines(self):
        text = "## One\nbody\n\n---\n\n## Two\nbody\n---\n## Three"
        assert split_stories(text) == ["## One\nbody", "## Two\nbody", "## Three"]
    
    def test_empty_blocks_are_dropped(self):
        assert split_stories("---\n\n---\nOnly\n---\n") == ["Only"]
    
    def test_inline_dashes_do_not_split(self):
        assert split_stories("a --- b") == ["a --- b"]
