from __future__ import annotations

from fastapi import HTTPException, Request

from ..domain.chat_models import Persona
from ..infrastructure.chat_store import ChatStore, get_chat_store
from ..infrastructure.feedback_store import InMemoryFeedbackSink, get_feedback_sink
from ..services.completion import CompletionClient
from ..services.personas import get_persona
from ..services.presenter import ArtifactPresenter


def get_presenter(request: Request) -> ArtifactPresenter:
    return request.app.state.presenter


def get_completion(request: Request) -> CompletionClient:
    return request.app.state.completion


def get_store() -> ChatStore:
    return get_chat_store()


def get_feedback() -> InMemoryFeedbackSink:
    return get_feedback_sink()


def require_persona(persona_id: str) -> Persona:
    persona = get_persona(persona_id)
    if persona is None:
        raise HTTPException(status_code=404, detail="Persona not found")
    return persona
