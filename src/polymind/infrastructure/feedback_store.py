from __future__ import annotations

import logging
import time
from threading import RLock
from typing import Dict, List, Optional

from ..domain.chat_models import Feedback

_logger = logging.getLogger("polymind.feedback")


class InMemoryFeedbackSink:
    """Latest feedback per message, kept in process memory."""

    def __init__(self) -> None:
        self._entries: Dict[str, Feedback] = {}
        self._lock = RLock()

    def record(self, feedback: Feedback) -> None:
        with self._lock:
            self._entries[feedback.message_id] = feedback
        _logger.info(
            "feedback_recorded",
            extra={
                "message_id": feedback.message_id,
                "persona_id": feedback.persona_id,
                "is_positive": feedback.is_positive,
            },
        )

    def list_recent(self, limit: int = 50) -> List[Feedback]:
        if limit <= 0:
            return []
        with self._lock:
            entries = sorted(self._entries.values(), key=lambda f: f.timestamp)
        return entries[-limit:]


def make_feedback(message_id: str, is_positive: bool, persona_id: str, comment: Optional[str] = None) -> Feedback:
    return Feedback(
        message_id=message_id,
        is_positive=is_positive,
        comment=comment,
        persona_id=persona_id,
        timestamp=time.time(),
    )


_sink: InMemoryFeedbackSink | None = None


def get_feedback_sink() -> InMemoryFeedbackSink:
    global _sink
    if _sink is None:
        _sink = InMemoryFeedbackSink()
    return _sink
