"""Data models for the skill library."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class SkillCategory(str, Enum):
    """Skill categories, in retrieval order."""

    GENERAL = "general"
    EARNINGS = "earnings"
    SCREENING = "screening"
    META = "meta"


class SkillStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class TaskOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Skill:
    """A learned principle that can be applied to future tasks.

    The category is part of the storage key, so it must not change after
    the skill is first saved.
    """

    id: str
    name: str
    category: SkillCategory
    principle: str
    when_to_apply: str
    created_at: datetime = field(default_factory=utcnow)
    created_from: str | None = None
    times_retrieved: int = 0
    times_helped: int = 0
    times_not_helped: int = 0
    version: int = 1
    status: SkillStatus = SkillStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "principle": self.principle,
            "when_to_apply": self.when_to_apply,
            "created_at": self.created_at.isoformat(),
            "times_retrieved": self.times_retrieved,
            "times_helped": self.times_helped,
            "times_not_helped": self.times_not_helped,
            "version": self.version,
            "status": self.status.value,
        }
        if self.created_from is not None:
            data["created_from"] = self.created_from
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Skill":
        return cls(
            id=data["id"],
            name=data["name"],
            category=SkillCategory(data["category"]),
            principle=data.get("principle", ""),
            when_to_apply=data.get("when_to_apply", ""),
            created_at=_parse_timestamp(data["created_at"]),
            created_from=data.get("created_from"),
            times_retrieved=data.get("times_retrieved", 0),
            times_helped=data.get("times_helped", 0),
            times_not_helped=data.get("times_not_helped", 0),
            version=data.get("version", 1),
            status=SkillStatus(data.get("status", "active")),
        )

    def to_summary(self) -> "SkillSummary":
        return SkillSummary(
            id=self.id,
            name=self.name,
            category=self.category,
            created_at=self.created_at,
            times_retrieved=self.times_retrieved,
        )


@dataclass
class SkillSummary:
    """Short form of a skill used in index listings."""

    id: str
    name: str
    category: SkillCategory
    created_at: datetime
    times_retrieved: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "created_at": self.created_at.isoformat(),
            "times_retrieved": self.times_retrieved,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SkillSummary":
        return cls(
            id=data["id"],
            name=data["name"],
            category=SkillCategory(data["category"]),
            created_at=_parse_timestamp(data["created_at"]),
            times_retrieved=data.get("times_retrieved", 0),
        )


@dataclass
class SkillIndex:
    """Denormalized summary of the library. A cache, never the source of truth."""

    total_count: int
    category_count: dict[str, int]
    recently_created: list[SkillSummary] = field(default_factory=list)
    most_retrieved: list[SkillSummary] = field(default_factory=list)
    last_updated: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCount": self.total_count,
            "categoryCount": dict(self.category_count),
            "recentlyCreated": [s.to_dict() for s in self.recently_created],
            "mostRetrieved": [s.to_dict() for s in self.most_retrieved],
            "lastUpdated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SkillIndex":
        return cls(
            total_count=data.get("totalCount", 0),
            category_count=dict(data.get("categoryCount", {})),
            recently_created=[
                SkillSummary.from_dict(s) for s in data.get("recentlyCreated", [])
            ],
            most_retrieved=[
                SkillSummary.from_dict(s) for s in data.get("mostRetrieved", [])
            ],
            last_updated=_parse_timestamp(data["lastUpdated"])
            if "lastUpdated" in data
            else utcnow(),
        )


@dataclass
class SkillStatsUpdate:
    """Partial update of the skill counters. ``None`` leaves a field untouched."""

    times_retrieved: int | None = None
    times_helped: int | None = None
    times_not_helped: int | None = None


@dataclass
class ConversationContext:
    """Per-conversation state carried from retrieval into reflection."""

    conversation_id: str
    user_message: str = ""
    assistant_response: str | None = None
    retrieved_skill_ids: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "conversationId": self.conversation_id,
            "userMessage": self.user_message,
            "retrievedSkillIds": list(self.retrieved_skill_ids),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.assistant_response is not None:
            data["assistantResponse"] = self.assistant_response
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationContext":
        return cls(
            conversation_id=data["conversationId"],
            user_message=data.get("userMessage", ""),
            assistant_response=data.get("assistantResponse"),
            retrieved_skill_ids=list(data.get("retrievedSkillIds", [])),
            timestamp=_parse_timestamp(data["timestamp"])
            if "timestamp" in data
            else utcnow(),
        )


@dataclass
class SkillRetrievalResult:
    """Skills selected for a message plus the rendered injection text."""

    general: list[Skill] = field(default_factory=list)
    relevant: list[Skill] = field(default_factory=list)
    skill_ids: list[str] = field(default_factory=list)
    formatted: str = ""


# ---------------------------------------------------------------------------
# Reflection verdict (parsed from the completion service)
# ---------------------------------------------------------------------------


class SkillEvaluation(BaseModel):
    skill_id: str
    was_helpful: bool


class NewSkillProposal(BaseModel):
    """A skill proposed by reflection. Meta skills cannot be proposed."""

    name: str
    category: Literal["general", "earnings", "screening"]
    principle: str
    when_to_apply: str


class SkillRefinement(BaseModel):
    skill_id: str
    updated_principle: str


class ReflectionResult(BaseModel):
    """Verdict returned by the reflection call."""

    task_outcome: Literal["success", "partial", "failure"]
    skills_evaluation: list[SkillEvaluation] = Field(default_factory=list)
    new_skill: NewSkillProposal | None = None
    skill_refinement: SkillRefinement | None = None
    reasoning: str = ""


def _parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
