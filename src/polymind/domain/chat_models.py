from __future__ import annotations

from typing import List, Optional, Literal
from pydantic import BaseModel, Field

from .artifact_models import MessageView


Role = Literal["user", "assistant"]


class ChatMessageCreate(BaseModel):
    content: str = Field(min_length=1)


class ChatMessage(BaseModel):
    id: str
    role: Role
    content: str
    created_at: Optional[str] = None


class ChatTranscript(BaseModel):
    persona_id: str
    messages: List[ChatMessage]
    greeting: Optional[str] = None


class Persona(BaseModel):
    persona_id: str
    title: str
    description: str
    prompt: str
    greeting: str
    placeholder: str = "Type your message..."
    artifacts_enabled: bool = False


class PersonaSummary(BaseModel):
    persona_id: str
    title: str
    description: str
    href: str


class ChatTurn(BaseModel):
    role: Role
    content: str
    id: Optional[str] = None


class ChatRequest(BaseModel):
    messages: List[ChatTurn] = Field(min_length=1)
    agentType: str


class ChatResponse(BaseModel):
    response: str


class CompletionRequest(BaseModel):
    persona_id: str
    user_text: str
    history_text: str = ""


class CompletionResult(BaseModel):
    success: bool
    response_text: Optional[str] = None
    error_message: Optional[str] = None


class FeedbackCreate(BaseModel):
    messageId: str
    isPositive: bool
    comment: Optional[str] = None
    agentType: str


class Feedback(BaseModel):
    message_id: str
    is_positive: bool
    comment: Optional[str] = None
    persona_id: str
    timestamp: float


class RenderRequest(BaseModel):
    text: str


class RenderedMessage(BaseModel):
    message: ChatMessage
    view: MessageView
