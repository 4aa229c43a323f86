from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse

from ...domain.chat_models import (
    ChatMessage,
    ChatMessageCreate,
    ChatRequest,
    ChatResponse,
    ChatTranscript,
    CompletionRequest,
    Persona,
    RenderedMessage,
)
from ...infrastructure.chat_store import ChatStore
from ...services.completion import CompletionClient, format_history
from ...services.conversation import ConversationSession
from ...services.presenter import ArtifactPresenter
from ..deps import get_completion, get_presenter, get_store, require_persona

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def chat(req: ChatRequest, completion: CompletionClient = Depends(get_completion)):
    """Stateless completion: the client sends the whole transcript."""
    require_persona(req.agentType)
    history = format_history(req.messages[:-1])
    request = CompletionRequest(
        persona_id=req.agentType,
        user_text=req.messages[-1].content,
        history_text=history,
    )
    result = await completion.acomplete(request)
    if not result.success:
        return JSONResponse(status_code=500, content={"error": result.error_message})
    return ChatResponse(response=result.response_text or "")


@router.get("/{persona_id}/messages", response_model=ChatTranscript)
def list_messages(
    persona: Persona = Depends(require_persona),
    start_fresh: bool = Query(False),
    store: ChatStore = Depends(get_store),
    completion: CompletionClient = Depends(get_completion),
) -> ChatTranscript:
    session = ConversationSession(persona.persona_id, store, completion, start_fresh=start_fresh)
    return ChatTranscript(
        persona_id=session.persona_id,
        messages=session.messages,
        greeting=None if session.messages else session.greeting(),
    )


@router.post("/{persona_id}/messages", response_model=ChatMessage)
async def post_message(
    msg: ChatMessageCreate,
    persona: Persona = Depends(require_persona),
    store: ChatStore = Depends(get_store),
    completion: CompletionClient = Depends(get_completion),
) -> ChatMessage:
    session = ConversationSession(persona.persona_id, store, completion)
    reply = await session.send(msg.content)
    if reply is None:
        raise HTTPException(status_code=422, detail="Message is empty")
    return reply


@router.delete("/{persona_id}/messages", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def clear_messages(
    persona: Persona = Depends(require_persona),
    store: ChatStore = Depends(get_store),
) -> Response:
    store.clear(persona.persona_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{persona_id}/messages/{message_id}/view", response_model=RenderedMessage)
async def view_message(
    message_id: str,
    persona: Persona = Depends(require_persona),
    store: ChatStore = Depends(get_store),
    presenter: ArtifactPresenter = Depends(get_presenter),
) -> RenderedMessage:
    message = store.get_message(persona.persona_id, message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    view = await presenter.render_message(message.content)
    return RenderedMessage(message=message, view=view)
