"""Self-improving skill library.

Skills are short lessons learned from earlier conversations. They are
retrieved for incoming messages, injected into the prompt, and evaluated
afterwards by a reflection call that can propose new skills.
"""

from sparkskills.skills.diagnostics import CaptureDirection, MessageCapture
from sparkskills.skills.injection import augment_message, estimate_tokens, format_skill_context
from sparkskills.skills.models import (
    ConversationContext,
    ReflectionResult,
    Skill,
    SkillCategory,
    SkillIndex,
    SkillRetrievalResult,
    SkillStatsUpdate,
    SkillStatus,
    SkillSummary,
)
from sparkskills.skills.reflection import (
    CompletionServiceError,
    ReflectionParseError,
    ReflectionPipeline,
    SkillsError,
)
from sparkskills.skills.retrieval import SkillRetriever, detect_category, score_skill_relevance
from sparkskills.skills.seeds import seed_skills
from sparkskills.skills.store import SkillStore

__all__ = [
    "CaptureDirection",
    "CompletionServiceError",
    "ConversationContext",
    "MessageCapture",
    "ReflectionParseError",
    "ReflectionPipeline",
    "ReflectionResult",
    "Skill",
    "SkillCategory",
    "SkillIndex",
    "SkillRetrievalResult",
    "SkillRetriever",
    "SkillStatsUpdate",
    "SkillStatus",
    "SkillStore",
    "SkillSummary",
    "SkillsError",
    "augment_message",
    "detect_category",
    "estimate_tokens",
    "format_skill_context",
    "score_skill_relevance",
    "seed_skills",
]
