"""Tests for the skill store."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from sparkskills.skills.models import SkillCategory, SkillStatsUpdate
from sparkskills.skills.seeds import SEED_SKILL_IDS
from sparkskills.skills.store import INDEX_KEY, SkillStore, skill_key


def _at(days: int) -> datetime:
    return datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(days=days)


class TestSkillKey:
    def test_layout(self):
        assert skill_key(SkillCategory.EARNINGS, "abc") == "skills/earnings/skill-abc.json"

    def test_accepts_string_category(self):
        assert skill_key("meta", "x") == "skills/meta/skill-x.json"


class TestSaveAndGet:
    @pytest.mark.asyncio
    async def test_save_writes_record_at_category_key(self, store, blobs, make_skill):
        skill = make_skill(id="abc", category=SkillCategory.SCREENING)
        await store.save_skill(skill)

        body = await blobs.get("skills/screening/skill-abc.json")
        assert json.loads(body)["name"] == "Sample Skill"

    @pytest.mark.asyncio
    async def test_round_trip(self, store, make_skill):
        skill = make_skill(id="abc", created_from="conv-9", times_helped=2)
        await store.save_skill(skill)
        assert await store.get_skill("abc") == skill

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get_skill("nope") is None

    @pytest.mark.asyncio
    async def test_get_finds_skill_from_fresh_store(self, blobs, make_skill):
        await SkillStore(blobs).save_skill(make_skill(id="abc", category=SkillCategory.META))

        # A new store has no id -> category hints and must scan.
        found = await SkillStore(blobs).get_skill("abc")
        assert found is not None
        assert found.category == SkillCategory.META

    @pytest.mark.asyncio
    async def test_get_ignores_stale_hint(self, blobs, make_skill):
        store = SkillStore(blobs)
        await store.save_skill(make_skill(id="abc", category=SkillCategory.GENERAL))

        # Another writer moves the record; the cached hint now points nowhere.
        other = SkillStore(blobs)
        await other.delete_skill("abc")
        await other.save_skill(make_skill(id="abc", category=SkillCategory.EARNINGS))

        found = await store.get_skill("abc")
        assert found.category == SkillCategory.EARNINGS

    @pytest.mark.asyncio
    async def test_save_rebuilds_index(self, store, make_skill):
        await store.save_skill(make_skill(id="a"))
        index = await store.get_index()
        assert index.total_count == 1
        assert index.recently_created[0].id == "a"


class TestListSkills:
    @pytest.mark.asyncio
    async def test_lists_all_excluding_index(self, store, make_skill):
        await store.save_skill(make_skill(id="a", category=SkillCategory.GENERAL))
        await store.save_skill(make_skill(id="b", category=SkillCategory.EARNINGS))

        skills = await store.list_skills()
        assert {s.id for s in skills} == {"a", "b"}

    @pytest.mark.asyncio
    async def test_filter_by_category(self, store, make_skill):
        await store.save_skill(make_skill(id="a", category=SkillCategory.GENERAL))
        await store.save_skill(make_skill(id="b", category=SkillCategory.EARNINGS))

        earnings = await store.list_skills(SkillCategory.EARNINGS)
        assert [s.id for s in earnings] == ["b"]
        assert [s.id for s in await store.list_skills("general")] == ["a"]

    @pytest.mark.asyncio
    async def test_empty(self, store):
        assert await store.list_skills() == []

    @pytest.mark.asyncio
    async def test_unknown_category_raises(self, store):
        with pytest.raises(ValueError):
            await store.list_skills("crypto")


class TestUpdateSkillStats:
    @pytest.mark.asyncio
    async def test_partial_update(self, store, make_skill):
        await store.save_skill(make_skill(id="a", times_retrieved=4, times_helped=1))

        updated = await store.update_skill_stats("a", SkillStatsUpdate(times_helped=5))

        assert updated.times_helped == 5
        stored = await store.get_skill("a")
        assert stored.times_helped == 5
        assert stored.times_retrieved == 4
        assert stored.times_not_helped == 0

    @pytest.mark.asyncio
    async def test_does_not_rebuild_index(self, store, make_skill):
        await store.save_skill(make_skill(id="a"))
        await store.update_skill_stats("a", SkillStatsUpdate(times_retrieved=7))

        index = await store.get_index()
        assert index.most_retrieved[0].times_retrieved == 0

    @pytest.mark.asyncio
    async def test_missing_skill_is_noop(self, store, blobs):
        assert await store.update_skill_stats("nope", SkillStatsUpdate(times_helped=1)) is None
        assert blobs.keys() == []


class TestIncrementSkillRetrieval:
    @pytest.mark.asyncio
    async def test_increments_by_one_and_rebuilds(self, store, make_skill):
        await store.save_skill(make_skill(id="a", times_retrieved=2))

        await store.increment_skill_retrieval("a")

        assert (await store.get_skill("a")).times_retrieved == 3
        index = await store.get_index()
        assert index.most_retrieved[0].times_retrieved == 3

    @pytest.mark.asyncio
    async def test_missing_skill_is_noop(self, store, blobs):
        await store.increment_skill_retrieval("nope")
        assert blobs.keys() == []


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_skill(self, store, make_skill):
        await store.save_skill(make_skill(id="a"))
        await store.save_skill(make_skill(id="b"))

        deleted = await store.delete_skill("a")

        assert deleted.id == "a"
        assert await store.get_skill("a") is None
        assert (await store.get_index()).total_count == 1

    @pytest.mark.asyncio
    async def test_delete_missing(self, store):
        assert await store.delete_skill("nope") is None

    @pytest.mark.asyncio
    async def test_delete_by_key(self, store, make_skill):
        await store.save_skill(make_skill(id="a", category=SkillCategory.EARNINGS))

        await store.delete_skill_by_key("skills/earnings/skill-a.json")

        assert await store.list_skills() == []
        assert (await store.get_index()).total_count == 0


class TestRebuildIndex:
    @pytest.mark.asyncio
    async def test_counts_match_listing(self, store, make_skill):
        await store.save_skill(make_skill(id="a", category=SkillCategory.GENERAL))
        await store.save_skill(make_skill(id="b", category=SkillCategory.GENERAL))
        await store.save_skill(make_skill(id="c", category=SkillCategory.SCREENING))

        index = await store.rebuild_index()

        assert index.total_count == len(await store.list_skills())
        assert sum(index.category_count.values()) == index.total_count
        assert index.category_count == {
            "general": 2, "earnings": 0, "screening": 1, "meta": 0,
        }

    @pytest.mark.asyncio
    async def test_empty_library_has_all_categories(self, store):
        index = await store.rebuild_index()
        assert index.total_count == 0
        assert index.category_count == {
            "general": 0, "earnings": 0, "screening": 0, "meta": 0,
        }
        assert index.recently_created == []
        assert index.most_retrieved == []

    @pytest.mark.asyncio
    async def test_windows_sorted_and_capped(self, store, blobs, make_skill):
        for i in range(12):
            skill = make_skill(id=f"s{i:02d}", created_at=_at(i), times_retrieved=(i * 7) % 12)
            await blobs.put(skill_key(skill.category, skill.id), json.dumps(skill.to_dict()))

        index = await store.rebuild_index()

        recent = [s.created_at for s in index.recently_created]
        assert len(recent) == 10
        assert recent == sorted(recent, reverse=True)
        assert index.recently_created[0].id == "s11"

        counts = [s.times_retrieved for s in index.most_retrieved]
        assert len(counts) == 10
        assert counts == sorted(counts, reverse=True)
        assert counts[0] == 11

    @pytest.mark.asyncio
    async def test_index_is_stored(self, store, blobs):
        await store.rebuild_index()
        assert json.loads(await blobs.get(INDEX_KEY))["totalCount"] == 0

    @pytest.mark.asyncio
    async def test_idempotent(self, store, make_skill):
        await store.save_skill(make_skill(id="a"))
        first = await store.rebuild_index()
        second = await store.rebuild_index()
        assert first.total_count == second.total_count
        assert first.category_count == second.category_count
        assert first.recently_created == second.recently_created
        assert first.most_retrieved == second.most_retrieved


class TestSeeding:
    @pytest.mark.asyncio
    async def test_reset_to_seeds_replaces_everything(self, store, make_skill):
        await store.save_skill(make_skill(id="custom", category=SkillCategory.EARNINGS))

        await store.reset_to_seeds()

        skills = await store.list_skills()
        assert sorted(s.id for s in skills) == sorted(SEED_SKILL_IDS)
        assert len(skills) == 4
        index = await store.get_index()
        assert index.category_count == {
            "general": 3, "earnings": 0, "screening": 0, "meta": 1,
        }

    @pytest.mark.asyncio
    async def test_reset_keeps_conversations(self, store, blobs):
        await blobs.put("conversations/c1.json", "{}")
        await store.reset_to_seeds()
        assert await blobs.get("conversations/c1.json") == "{}"

    @pytest.mark.asyncio
    async def test_initialize_seeds_empty_library(self, store):
        assert await store.initialize_skills() is True
        assert len(await store.list_skills()) == 4

    @pytest.mark.asyncio
    async def test_initialize_seeds_when_index_reports_zero(self, store):
        await store.rebuild_index()
        assert await store.initialize_skills() is True

    @pytest.mark.asyncio
    async def test_initialize_leaves_existing_library(self, store, make_skill):
        await store.save_skill(make_skill(id="custom"))

        assert await store.initialize_skills() is False
        assert [s.id for s in await store.list_skills()] == ["custom"]


class TestStats:
    @pytest.mark.asyncio
    async def test_no_index(self, store):
        stats = await store.get_stats()
        assert stats == {
            "total": 0,
            "byCategory": {},
            "recentlyCreated": [],
            "mostRetrieved": [],
            "lastUpdated": None,
        }

    @pytest.mark.asyncio
    async def test_from_index(self, store):
        await store.reset_to_seeds()
        stats = await store.get_stats()
        assert stats["total"] == 4
        assert stats["byCategory"]["general"] == 3
        assert len(stats["recentlyCreated"]) == 4
        assert stats["lastUpdated"] is not None
