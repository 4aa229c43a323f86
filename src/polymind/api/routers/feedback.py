from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from ...domain.chat_models import Feedback, FeedbackCreate
from ...infrastructure.feedback_store import InMemoryFeedbackSink, make_feedback
from ..deps import get_feedback

router = APIRouter(prefix="/feedback", tags=["feedback"])


class FeedbackAck(BaseModel):
    success: bool


@router.post("", response_model=FeedbackAck, status_code=status.HTTP_202_ACCEPTED)
def submit_feedback(payload: FeedbackCreate, sink: InMemoryFeedbackSink = Depends(get_feedback)) -> FeedbackAck:
    sink.record(
        make_feedback(
            message_id=payload.messageId,
            is_positive=payload.isPositive,
            persona_id=payload.agentType,
            comment=payload.comment,
        )
    )
    return FeedbackAck(success=True)


@router.get("", response_model=List[Feedback])
def recent_feedback(
    limit: int = Query(50, ge=1, le=500),
    sink: InMemoryFeedbackSink = Depends(get_feedback),
) -> List[Feedback]:
    return sink.list_recent(limit)
