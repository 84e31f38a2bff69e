"""Render selected skills into bounded prompt text."""

import logging
import math

from sparkskills.skills.models import Skill

logger = logging.getLogger(__name__)

MAX_TOKEN_BUDGET = 1500
CHARS_PER_TOKEN = 4
MAX_CHARS = MAX_TOKEN_BUDGET * CHARS_PER_TOKEN

HEADER = "---\n## Active Skills (learned from experience)\n\n"
FOOTER = "---\n"
GENERAL_HEADING = "### General Skills"
RELEVANT_HEADING = "### Relevant Skills for This Task"
TRUNCATION_MARKER = "... (more skills available)\n"


def estimate_tokens(text: str) -> int:
    """Rough token count used for budget accounting only."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _format_skill(skill: Skill) -> str:
    return f"- **{skill.name}**: {skill.principle}"


def format_skill_context(
    general: list[Skill],
    relevant: list[Skill],
    max_tokens: int = MAX_TOKEN_BUDGET,
) -> str:
    """Format skills as a markdown block for injection into a message.

    Returns an empty string when there is nothing to inject. The budget
    applies to the body between header and footer. When it is exceeded,
    all general skills are kept and relevant skills are added until the
    next one would not fit. A truncation marker follows whenever any
    relevant skill is left out.
    """
    if not general and not relevant:
        return ""

    max_chars = max_tokens * CHARS_PER_TOKEN

    lines: list[str] = []
    if general:
        lines.append(GENERAL_HEADING)
        lines.extend(_format_skill(s) for s in general)
        lines.append("")
    if relevant:
        lines.append(RELEVANT_HEADING)
        lines.extend(_format_skill(s) for s in relevant)
        lines.append("")

    body = "\n".join(lines)

    if len(body) > max_chars:
        logger.warning(
            "Skill context exceeds budget (%d chars > %d), truncating",
            len(body), max_chars,
        )
        body = _truncate(general, relevant, max_chars)

    return HEADER + body + FOOTER


def _truncate(general: list[Skill], relevant: list[Skill], max_chars: int) -> str:
    body = ""
    if general:
        body = GENERAL_HEADING + "\n" + "\n".join(_format_skill(s) for s in general) + "\n"

    if not relevant:
        return body

    heading = "\n" + RELEVANT_HEADING + "\n"
    if len(body) + len(heading) + len(TRUNCATION_MARKER) > max_chars:
        return body + TRUNCATION_MARKER

    body += heading
    for skill in relevant:
        line = _format_skill(skill) + "\n"
        # Keep room for the marker so it never pushes the body over budget.
        if len(body) + len(line) + len(TRUNCATION_MARKER) > max_chars:
            body += TRUNCATION_MARKER
            break
        body += line
    return body


def augment_message(original: str, skill_context: str) -> str:
    """Append skill context to a user message. Empty context is a no-op."""
    if not skill_context:
        return original
    return f"{original}\n\n{skill_context}"
