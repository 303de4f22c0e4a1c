"""
Prompt templates for user stories, workflows and PRDs.
"""

from dataclasses import dataclass, fields
from typing import Dict

USER_STORY_TEMPLATES = {
    "scrum": "Scrum Format",
    "jtbd": "Jobs-to-be-Done",
    "simple": "Simple Format",
}

PRD_TEMPLATES = {
    "comprehensive": "Comprehensive PRD (All Sections)",
    "executive": "Executive Summary (C-Suite)",
    "technical": "Technical Spec (Engineering)",
    "onepager": "One-Pager (Quick)",
}

BUSINESS_GOALS = {
    "revenue": "Increase Revenue",
    "enterprise": "Win Enterprise Customers",
    "delight": "Delighters (Improve UX)",
    "engagement": "Increase Engagement",
    "infrastructure": "Keep the Lights On",
    "acquisition": "User Acquisition / Growth",
    "custom": "Custom Goal (Define Your Own)",
}

SUGGESTED_METRICS = {
    "revenue": "Monthly Recurring Revenue (MRR)\n"
               "Average Revenue Per User (ARPU)\n"
               "Conversion Rate to Paid\n"
               "Upsell/Cross-sell Rate",
    "enterprise": "Enterprise Customer Count ($10K+ contracts)\n"
                  "Average Contract Value (ACV)\n"
                  "Sales Cycle Length\n"
                  "Enterprise Win Rate",
    "delight": "Net Promoter Score (NPS)\n"
               "Customer Satisfaction Score (CSAT)\n"
               "Feature Adoption Rate\n"
               "Time on Platform",
    "engagement": "Weekly Active Users (WAU)\n"
                  "Daily Active Users (DAU)\n"
                  "Session Duration\n"
                  "Feature Usage Frequency",
    "infrastructure": "System Uptime %\n"
                      "Mean Time to Recovery (MTTR)\n"
                      "Bug/Incident Count\n"
                      "Page Load Speed",
    "acquisition": "New User Sign-ups\n"
                   "Activation Rate (% completing key action)\n"
                   "Cost Per Acquisition (CPA)\n"
                   "Viral Coefficient",
}

_STORY_FORMATS = {
    "scrum": """Format the user story using the Scrum/Agile format:

**User Story:**
As a [type of user],
I want [an action/feature],
So that [benefit/value].

**Acceptance Criteria:**
- [Criterion 1]
- [Criterion 2]
- [Criterion 3]

**Technical Notes:**
[Any technical considerations]

**Estimated Story Points:** [1, 2, 3, 5, 8, 13, or 21]""",
    "jtbd": """Format the user story using the Jobs-to-be-Done (JTBD) format:

**Job Story:**
When [situation/context],
I want to [motivation/goal],
So I can [expected outcome].

**Success Criteria:**
- [Criterion 1]
- [Criterion 2]
- [Criterion 3]

**Forces/Constraints:**
[Any constraints or considerations]

**Estimated Effort:** [Small, Medium, Large, or XL]""",
    "simple": """Format the user story in a simple, straightforward format:

**Feature:** [Feature name]

**Description:**
[Clear description of what needs to be built]

**Why It Matters:**
[Business value and user benefit]

**Key Requirements:**
- [Requirement 1]
- [Requirement 2]
- [Requirement 3]

**Success Metrics:**
[How we'll measure success]""",
}

_PRD_FOCUS = {
    "comprehensive": "Cover every section in full detail.",
    "executive": "Write it as an executive summary for C-suite readers: lead with business impact, keep each section short.",
    "technical": "Write it as a technical specification for engineers: expand requirements, flows, business logic and dependencies.",
    "onepager": "Condense it into a one-page document with only the essential points of each section.",
}


@dataclass
class PrdForm:
    """Inputs of the PRD form. Only the first three fields are required."""
    product_name: str = ""
    problem_statement: str = ""
    business_goal: str = ""
    custom_goal: str = ""
    target_users_primary: str = ""
    target_users_secondary: str = ""
    narrative: str = ""
    impact_sizing: str = ""
    metrics: str = ""
    known_info: str = ""
    goals: str = ""
    non_goals: str = ""
    high_level_approach: str = ""
    solution_alignment: str = ""
    key_features: str = ""
    future_considerations: str = ""
    key_flows: str = ""
    key_logic: str = ""
    technical_reqs: str = ""
    dependencies: str = ""
    launch_plan: str = ""
    milestones: str = ""
    risks: str = ""
    success_criteria: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "PrdForm":
        """Build a form from a mapping, rejecting unknown fields.

        Picking a predefined business goal fills empty metrics with the
        goal's suggested metrics.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown PRD form fields: {sorted(unknown)}")
        form = cls(**{key: "" if value is None else str(value) for key, value in data.items()})
        if not form.metrics and form.business_goal in SUGGESTED_METRICS:
            form.metrics = SUGGESTED_METRICS[form.business_goal]
        return form

    @property
    def goal_text(self) -> str:
        """The business goal as free text; custom goals use custom_goal."""
        if self.business_goal == "custom":
            return self.custom_goal
        return self.business_goal

    def missing_required(self):
        """Names of required fields that are blank."""
        missing = []
        if not self.product_name.strip():
            missing.append("product_name")
        if not self.problem_statement.strip():
            missing.append("problem_statement")
        if not self.business_goal.strip():
            missing.append("business_goal")
        return missing


def generate_user_story_prompt(feature_description: str, template: str) -> str:
    """Build the prompt for a single user story."""
    base = (
        "You are an expert Product Manager. Generate a detailed user story based on "
        f"the following feature description:\n\n{feature_description}\n\n"
    )
    instructions = _STORY_FORMATS.get(template, "Use the Scrum format.")
    return base + instructions + "\n\nMake the user story specific, actionable, and valuable."


def generate_workflow_prompt(workflow_description: str, template: str, story_count: int) -> str:
    """Build the prompt for a batch of user stories covering one workflow.

    The model is asked to separate stories with "---" lines so the
    response can be split with split_stories().
    """
    instructions = _STORY_FORMATS.get(template, _STORY_FORMATS["scrum"])
    return (
        "You are an expert Product Manager. Break the following user workflow into "
        f"{story_count} user stories, one per step, in workflow order:\n\n"
        f"{workflow_description}\n\n"
        "Start each user story with a \"## \" heading naming the step, and add a "
        "**Priority:** line (P0, P1 or P2). Separate user stories with a line "
        "containing only ---.\n\n"
        f"{instructions}\n\nMake every user story specific, actionable, and valuable."
    )


def generate_prd_prompt(form: PrdForm, template: str = "comprehensive") -> str:
    """Build the prompt for a PRD from the form inputs.

    Blank fields are replaced with bracketed hints for the model to fill.
    """
    focus = _PRD_FOCUS.get(template, _PRD_FOCUS["comprehensive"])
    return f"""You are an expert Product Manager. Generate a comprehensive Product Requirements Document (PRD) based on the following information:

# Product: {form.product_name or '[Product Name]'}

## Problem Statement
{form.problem_statement or '[Define the problem this product solves]'}

## Business Goal
{form.goal_text or '[Define the business objective]'}

## Target Users
**Primary:** {form.target_users_primary or '[Define primary users]'}
**Secondary:** {form.target_users_secondary or '[Define secondary users]'}

## User/Business Narrative
{form.narrative or '[Describe the user journey and business context]'}

## Impact & Sizing
{form.impact_sizing or '[Estimate the potential impact and effort]'}

## Success Metrics
{form.metrics or '[Define how success will be measured]'}

## Known Information & Constraints
{form.known_info or '[List any known constraints or requirements]'}

## Goals
{form.goals or '[What we want to achieve]'}

## Non-Goals
{form.non_goals or '[What is explicitly out of scope]'}

## High-Level Approach
{form.high_level_approach or '[Describe the general solution approach]'}

## Solution Alignment
{form.solution_alignment or '[How this aligns with company strategy]'}

## Key Features
{form.key_features or '[List the main features to build]'}

## Future Considerations
{form.future_considerations or '[What might come in future iterations]'}

## Key User Flows
{form.key_flows or '[Describe critical user flows]'}

## Key Business Logic
{form.key_logic or '[Describe important business rules]'}

## Technical Requirements
{form.technical_reqs or '[List technical specifications]'}

## Dependencies
{form.dependencies or '[List any dependencies on other systems/teams]'}

## Launch Plan
{form.launch_plan or '[Describe rollout strategy]'}

## Milestones
{form.milestones or '[Key dates and checkpoints]'}

## Risks & Mitigations
{form.risks or '[Identify risks and how to address them]'}

## Success Criteria
{form.success_criteria or '[Final acceptance criteria]'}

---

Based on the above information, generate a well-structured, comprehensive PRD that fills in any gaps, provides detailed specifications, and ensures all stakeholders have a clear understanding of what needs to be built. Make it actionable and specific. {focus}"""
