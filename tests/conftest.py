"""Pytest fixtures for SparkSkills tests."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from sparkskills.providers.base import LLMProvider, LLMResponse
from sparkskills.skills.models import Skill, SkillCategory
from sparkskills.skills.store import SkillStore
from sparkskills.storage import InMemoryBlobStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def blobs():
    """An empty in-memory blob store."""
    return InMemoryBlobStore()


@pytest.fixture
def store(blobs):
    """A skill store on the in-memory blob store."""
    return SkillStore(blobs)


@pytest.fixture
def make_skill():
    """Factory for skills with sensible defaults."""

    def _make(
        id: str = "s1",
        name: str = "Sample Skill",
        category: SkillCategory = SkillCategory.GENERAL,
        principle: str = "Do the thing.",
        when_to_apply: str = "Always",
        **kwargs,
    ) -> Skill:
        kwargs.setdefault("created_at", datetime(2026, 1, 1, tzinfo=timezone.utc))
        return Skill(
            id=id,
            name=name,
            category=category,
            principle=principle,
            when_to_apply=when_to_apply,
            **kwargs,
        )

    return _make


class ScriptedProvider(LLMProvider):
    """Provider that replays queued responses and records every call."""

    def __init__(self, responses: list[LLMResponse | str] | None = None):
        super().__init__(api_key="test-key")
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    async def chat(self, messages, model=None, max_tokens=4096, temperature=0.7):
        self.calls.append({"messages": messages, "model": model, "max_tokens": max_tokens})
        if not self.responses:
            return LLMResponse(content="ok")
        response = self.responses.pop(0)
        if isinstance(response, str):
            return LLMResponse(content=response)
        return response

    def get_default_model(self) -> str:
        return "scripted-model"


@pytest.fixture
def provider_factory():
    """Build a provider that returns the given responses in order."""
    return ScriptedProvider


class FakeClock:
    """Settable clock for TTL tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))
