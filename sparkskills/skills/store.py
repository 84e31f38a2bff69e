"""Skill store: skill records and the derived index on a blob store."""

import json
import logging

from sparkskills.skills.models import (
    Skill,
    SkillCategory,
    SkillIndex,
    SkillStatsUpdate,
    utcnow,
)
from sparkskills.skills.seeds import seed_skills
from sparkskills.storage.base import BlobStore

logger = logging.getLogger(__name__)

SKILLS_PREFIX = "skills/"
INDEX_KEY = f"{SKILLS_PREFIX}_index.json"
INDEX_WINDOW = 10


def skill_key(category: SkillCategory | str, skill_id: str) -> str:
    """Storage key for a skill record."""
    category = SkillCategory(category).value
    return f"{SKILLS_PREFIX}{category}/skill-{skill_id}.json"


class SkillStore:
    """
    Persistent store for skills.

    Each skill lives at ``skills/<category>/skill-<id>.json``; the index at
    ``skills/_index.json`` is rebuilt from a full listing after writes.
    There is no locking: concurrent read-modify-write on the same skill is
    last-write-wins.
    """

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs
        # id -> category, filled from listings. Only a hint for get_skill.
        self._categories: dict[str, SkillCategory] = {}

    async def _write(self, skill: Skill) -> None:
        await self.blobs.put(
            skill_key(skill.category, skill.id),
            json.dumps(skill.to_dict(), indent=2),
        )
        self._categories[skill.id] = skill.category

    async def _read(self, key: str) -> Skill | None:
        body = await self.blobs.get(key)
        if body is None:
            return None
        return Skill.from_dict(json.loads(body))

    async def list_skills(self, category: SkillCategory | str | None = None) -> list[Skill]:
        """List all skills, or those of one category. Excludes the index."""
        if category:
            prefix = f"{SKILLS_PREFIX}{SkillCategory(category).value}/"
        else:
            prefix = SKILLS_PREFIX

        skills: list[Skill] = []
        for info in await self.blobs.list(prefix):
            if info.key == INDEX_KEY:
                continue
            skill = await self._read(info.key)
            if skill is not None:
                skills.append(skill)
                self._categories[skill.id] = skill.category
        return skills

    async def get_skill(self, skill_id: str) -> Skill | None:
        """Get a skill by ID, searching every category when the hint misses."""
        category = self._categories.get(skill_id)
        if category is not None:
            skill = await self._read(skill_key(category, skill_id))
            if skill is not None and skill.id == skill_id:
                return skill
            self._categories.pop(skill_id, None)

        for skill in await self.list_skills():
            if skill.id == skill_id:
                return skill
        return None

    async def save_skill(self, skill: Skill) -> None:
        """Write a skill and rebuild the index."""
        await self._write(skill)
        await self.rebuild_index()

    async def update_skill_stats(self, skill_id: str, stats: SkillStatsUpdate) -> Skill | None:
        """Set the given counters on a skill.

        The index is not rebuilt here, so it may lag until
        the next rebuild.
        """
        skill = await self.get_skill(skill_id)
        if skill is None:
            logger.warning("Skill %s not found for stats update", skill_id)
            return None

        if stats.times_retrieved is not None:
            skill.times_retrieved = stats.times_retrieved
        if stats.times_helped is not None:
            skill.times_helped = stats.times_helped
        if stats.times_not_helped is not None:
            skill.times_not_helped = stats.times_not_helped

        await self._write(skill)
        return skill

    async def increment_skill_retrieval(self, skill_id: str) -> None:
        """Add one to ``times_retrieved`` and rebuild the index."""
        skill = await self.get_skill(skill_id)
        if skill is None:
            return

        skill.times_retrieved += 1
        await self._write(skill)
        await self.rebuild_index()

    async def delete_skill(self, skill_id: str) -> Skill | None:
        """Delete a skill by ID. Returns the deleted skill, or None if missing."""
        skill = await self.get_skill(skill_id)
        if skill is None:
            return None

        await self.delete_skill_by_key(skill_key(skill.category, skill.id))
        self._categories.pop(skill.id, None)
        return skill

    async def delete_skill_by_key(self, key: str) -> None:
        """Delete the object at ``key`` and rebuild the index."""
        await self.blobs.delete(key)
        await self.rebuild_index()

    async def reset_to_seeds(self) -> list[Skill]:
        """Delete everything under ``skills/`` and write the seed skills."""
        for info in await self.blobs.list(SKILLS_PREFIX):
            await self.blobs.delete(info.key)
        self._categories.clear()

        seeds = seed_skills()
        for skill in seeds:
            await self._write(skill)

        await self.rebuild_index()
        logger.info("Skill library reset to %d seed skills", len(seeds))
        return seeds

    async def get_index(self) -> SkillIndex | None:
        """Read the stored index, or None if it has never been built."""
        body = await self.blobs.get(INDEX_KEY)
        if body is None:
            return None
        return SkillIndex.from_dict(json.loads(body))

    async def rebuild_index(self) -> SkillIndex:
        """Recompute the index from a full listing and store it."""
        skills = await self.list_skills()

        category_count = {category.value: 0 for category in SkillCategory}
        for skill in skills:
            category_count[skill.category.value] += 1

        by_date = sorted(skills, key=lambda s: s.created_at, reverse=True)
        by_retrieval = sorted(skills, key=lambda s: s.times_retrieved, reverse=True)

        index = SkillIndex(
            total_count=len(skills),
            category_count=category_count,
            recently_created=[s.to_summary() for s in by_date[:INDEX_WINDOW]],
            most_retrieved=[s.to_summary() for s in by_retrieval[:INDEX_WINDOW]],
            last_updated=utcnow(),
        )
        await self.blobs.put(INDEX_KEY, json.dumps(index.to_dict(), indent=2))
        return index

    async def initialize_skills(self) -> bool:
        """Seed the library if the index is missing or empty.

        Returns True if seeding happened.
        """
        index = await self.get_index()
        if index is None or index.total_count == 0:
            logger.info("No skills found, initializing with seeds")
            await self.reset_to_seeds()
            return True
        return False

    async def get_stats(self) -> dict:
        """Library statistics from the index, with empty defaults."""
        index = await self.get_index()
        if index is None:
            return {
                "total": 0,
                "byCategory": {},
                "recentlyCreated": [],
                "mostRetrieved": [],
                "lastUpdated": None,
            }

        data = index.to_dict()
        return {
            "total": data["totalCount"],
            "byCategory": data["categoryCount"],
            "recentlyCreated": data["recentlyCreated"],
            "mostRetrieved": data["mostRetrieved"],
            "lastUpdated": data["lastUpdated"],
        }
