"""Prompt templates for skill reflection."""

REFLECTION_PROMPT = """You are a skill learning system. Review the following task interaction and the skills that were available.

## Task Interaction
User Message: {user_message}
Assistant Response: {assistant_response}

## Skills Retrieved For This Task
{retrieved_skills}

## Current Skill Library
{skill_index}

## Instructions
Evaluate this interaction and respond with JSON:

{{
  "task_outcome": "success" | "partial" | "failure",
  "skills_evaluation": [
    {{"skill_id": "...", "was_helpful": true/false}}
  ],
  "new_skill": null | {{
    "name": "Short descriptive name",
    "category": "general" | "earnings" | "screening",
    "principle": "The lesson in 1-3 sentences",
    "when_to_apply": "When this skill is relevant"
  }},
  "skill_refinement": null | {{
    "skill_id": "...",
    "updated_principle": "Refined version of the principle"
  }},
  "reasoning": "Brief explanation of your evaluation"
}}

Only propose a new skill if it is: transferable (applies beyond this specific task), concise (a few sentences), actionable (gives clear guidance), and non-redundant (not already covered by existing skills). Most interactions will NOT produce a new skill. That is fine."""

DEMO_FALLBACK_PRINCIPLE = (
    "When comparing companies, align fiscal calendars, metric definitions, and "
    "reporting windows before drawing conclusions."
)

DEMO_FALLBACK_WHEN = (
    "When a request compares two companies or asks for cross-company trend analysis."
)
