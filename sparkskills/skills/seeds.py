"""Seed skills used to bootstrap an empty library."""

import uuid
from datetime import datetime

from sparkskills.skills.models import Skill, SkillCategory, utcnow

_SEEDS: list[dict] = [
    {
        "id": "meta-self-improvement",
        "name": "Self-Improvement",
        "category": SkillCategory.META,
        "principle": (
            "After completing any task, reflect on what happened. If the task "
            "succeeded, identify the pattern that made it work. If it failed or "
            "required retries, identify what went wrong and what should have been "
            "done. Formulate lessons as candidate skills. A good skill is: "
            "transferable (applies beyond this specific task), concise (a few "
            "sentences), actionable (gives clear guidance), and non-redundant (not "
            "already in the library). Store approved skills for future use."
        ),
        "when_to_apply": "After every task completion, whether successful or not",
    },
    {
        "id": "general-verify-source",
        "name": "Verify Source Before Citing",
        "category": SkillCategory.GENERAL,
        "principle": (
            "Always check document dates and confirm data comes from primary "
            "filings, not secondary summaries."
        ),
        "when_to_apply": "When citing financial data or research",
    },
    {
        "id": "general-decompose-queries",
        "name": "Decompose Complex Queries",
        "category": SkillCategory.GENERAL,
        "principle": (
            "Break multi-part financial questions into sequential sub-tasks. "
            "Answer each before synthesizing."
        ),
        "when_to_apply": "When facing multi-part questions",
    },
    {
        "id": "general-state-assumptions",
        "name": "State Assumptions Explicitly",
        "category": SkillCategory.GENERAL,
        "principle": (
            "When making comparisons, state the time period, currency, and whether "
            "figures are GAAP or non-GAAP."
        ),
        "when_to_apply": "When comparing financial metrics",
    },
]

SEED_SKILL_IDS: tuple[str, ...] = tuple(seed["id"] for seed in _SEEDS)


def seed_skills(now: datetime | None = None) -> list[Skill]:
    """Build fresh copies of the seed skills, stamped with ``now``."""
    created_at = now or utcnow()
    return [Skill(created_at=created_at, **seed) for seed in _SEEDS]


def demo_skill(created_from: str = "demo-interaction") -> Skill:
    """A hand-written earnings skill for demos where reflection is unavailable."""
    return Skill(
        id=f"skill-{uuid.uuid4()}",
        name="Fiscal Year Normalization",
        category=SkillCategory.EARNINGS,
        principle=(
            "When comparing financial metrics across companies, check fiscal year "
            "end dates first. Normalize to calendar quarters before extracting data. "
            "NVDA ends Jan, MSFT ends Jun, most others end Dec."
        ),
        when_to_apply="Any task comparing metrics across two or more companies",
        created_from=created_from,
    )
