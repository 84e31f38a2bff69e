"""Bounded capture of message traffic for debugging."""

import json
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from sparkskills.skills.models import utcnow

logger = logging.getLogger(__name__)

MAX_CAPTURED = 50
MAX_RAW_CHARS = 500


class CaptureDirection(str, Enum):
    TO_MODEL = "user->model"
    FROM_MODEL = "model->user"


@dataclass
class CapturedMessage:
    direction: CaptureDirection
    timestamp: datetime
    raw: str
    parsed: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction.value,
            "timestamp": self.timestamp.isoformat(),
            "raw": self.raw,
            "parsed": self.parsed,
        }


class MessageCapture:
    """
    Ring buffer of captured messages, owned by whichever component needs it.

    Disabled by default; ``enable()`` clears old captures. Only the most
    recent ``max_messages`` entries are kept, each truncated to
    ``MAX_RAW_CHARS`` characters.
    """

    def __init__(self, max_messages: int = MAX_CAPTURED, enabled: bool = False):
        self.max_messages = max_messages
        self.enabled = enabled
        self._messages: deque[CapturedMessage] = deque(maxlen=max_messages)

    def enable(self) -> None:
        self.enabled = True
        self._messages.clear()
        logger.info("Message capture enabled")

    def disable(self) -> None:
        self.enabled = False
        logger.info("Message capture disabled")

    def capture(self, direction: CaptureDirection, data: str) -> None:
        """Record a message if capture is enabled."""
        if not self.enabled:
            return

        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            parsed = None

        self._messages.append(CapturedMessage(
            direction=CaptureDirection(direction),
            timestamp=utcnow(),
            raw=data[:MAX_RAW_CHARS],
            parsed=parsed,
        ))
        logger.debug("Captured %s message", CaptureDirection(direction).value)

    def messages(self) -> list[CapturedMessage]:
        """Copy of the captured messages, oldest first."""
        return list(self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
