"""Lexical skill retrieval.

Selects skills for an incoming message: every general skill, plus the
best-scoring skills from the categories the message appears to be about.
Retrieval counters are bumped in background tasks that never block or
fail the caller.
"""

import asyncio
import logging
import re
from collections.abc import Callable, Coroutine
from typing import Any

from sparkskills.skills.injection import MAX_TOKEN_BUDGET, format_skill_context
from sparkskills.skills.models import Skill, SkillCategory, SkillRetrievalResult
from sparkskills.skills.store import SkillStore

logger = logging.getLogger(__name__)

EARNINGS_KEYWORDS = ("compare", "vs", "versus", "comparison")
SCREENING_KEYWORDS = ("find", "screen", "filter", "search for", "identify")
TICKER_PATTERN = re.compile(r"\b[A-Z]{2,5}\b")
MAX_RELEVANT_SKILLS = 5


def detect_category(message: str) -> set[SkillCategory]:
    """Guess which skill categories a message is about.

    Earnings needs a comparison keyword and at least two distinct
    ticker-like tokens; screening needs any screening keyword.
    """
    lower = message.lower()
    categories: set[SkillCategory] = set()

    has_comparison = any(kw in lower for kw in EARNINGS_KEYWORDS)
    tickers = set(TICKER_PATTERN.findall(message))
    if has_comparison and len(tickers) >= 2:
        categories.add(SkillCategory.EARNINGS)

    if any(kw in lower for kw in SCREENING_KEYWORDS):
        categories.add(SkillCategory.SCREENING)

    return categories


def score_skill_relevance(skill: Skill, message: str) -> float:
    """Additive keyword score of a skill against a message.

    Scoring: name words (len > 3) * 2 + principle words (len > 4) * 1
    + when_to_apply words (len > 4) * 1.5, each counted on substring match.
    """
    lower = message.lower()
    score = 0.0

    for word in skill.name.lower().split():
        if len(word) > 3 and word in lower:
            score += 2
    for word in skill.principle.lower().split():
        if len(word) > 4 and word in lower:
            score += 1
    for word in skill.when_to_apply.lower().split():
        if len(word) > 4 and word in lower:
            score += 1.5

    return score


class SkillRetriever:
    """Selects skills for messages and tracks background counter updates."""

    def __init__(
        self,
        store: SkillStore,
        max_relevant: int = MAX_RELEVANT_SKILLS,
        token_budget: int = MAX_TOKEN_BUDGET,
        on_error: Callable[[str, BaseException], None] | None = None,
    ):
        self.store = store
        self.max_relevant = max_relevant
        self.token_budget = token_budget
        self._on_error = on_error
        self._background: set[asyncio.Task] = set()
        self.background_failures: list[tuple[str, BaseException]] = []

    async def retrieve_skills_for_message(self, message: str) -> SkillRetrievalResult:
        """Select general and relevant skills and render them for injection."""
        general = await self.store.list_skills(SkillCategory.GENERAL)

        detected = detect_category(message)
        pool: list[Skill] = []
        for category in SkillCategory:
            if category in detected:
                pool.extend(await self.store.list_skills(category))

        # sorted() is stable: ties keep listing order.
        ranked = sorted(pool, key=lambda s: score_skill_relevance(s, message), reverse=True)
        relevant = ranked[: self.max_relevant]

        skill_ids = [s.id for s in general] + [s.id for s in relevant]
        for skill_id in skill_ids:
            self._spawn(self.store.increment_skill_retrieval(skill_id), skill_id)

        return SkillRetrievalResult(
            general=general,
            relevant=relevant,
            skill_ids=skill_ids,
            formatted=format_skill_context(general, relevant, self.token_budget),
        )

    def _spawn(self, coro: Coroutine[Any, Any, None], skill_id: str) -> None:
        task = asyncio.create_task(coro, name=f"increment-retrieval:{skill_id}")
        self._background.add(task)
        task.add_done_callback(lambda t: self._on_background_done(t, skill_id))

    def _on_background_done(self, task: asyncio.Task, skill_id: str) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return

        logger.error("Failed to update retrieval count for %s: %s", skill_id, exc)
        self.background_failures.append((skill_id, exc))
        if self._on_error:
            self._on_error(skill_id, exc)

    @property
    def pending(self) -> int:
        """Number of background updates still running."""
        return len(self._background)

    async def wait_for_background(self) -> None:
        """Wait until all background counter updates have finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
