from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from langchain_openai import ChatOpenAI

from ..config import Settings
from ..domain.chat_models import ChatTurn, CompletionRequest, CompletionResult
from ..observability.metrics import COMPLETIONS
from .personas import get_persona, system_prompt

logger = logging.getLogger(__name__)
LOG = logging.getLogger("polymind.llm")

GENERIC_ERROR = "Failed to process your request. Please try again."


def format_history(turns: Iterable[ChatTurn]) -> str:
    """``User: ...`` / ``Assistant: ...`` lines, oldest first."""
    lines: List[str] = []
    for turn in turns:
        speaker = "User" if turn.role == "user" else "Assistant"
        lines.append(f"{speaker}: {turn.content}")
    return "\n".join(lines)


def build_messages(request: CompletionRequest, enable_artifacts: bool = False) -> List[Dict[str, str]]:
    persona = get_persona(request.persona_id)
    if persona is None:
        raise KeyError(f"Unknown persona: {request.persona_id}")
    prompt = (
        f"Chat History:\n{request.history_text}\n\n"
        f"User: {request.user_text}"
    )
    return [
        {"role": "system", "content": system_prompt(persona, enable_artifacts)},
        {"role": "user", "content": prompt},
    ]


def _get_llm(settings: Settings) -> ChatOpenAI:
    logger.info(
        "Using LLM provider name=%s model=%s base_url=%s",
        settings.llm_provider,
        settings.llm_model,
        settings.llm_base_url,
    )
    # Single attempt per request.
    return ChatOpenAI(
        api_key=settings.llm_api_key or "not-needed",
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_retries=0,
    )


class CompletionClient:
    """Sends one persona-scoped prompt to the hosted model."""

    def __init__(self, settings: Settings, llm: Optional[object] = None) -> None:
        self._settings = settings
        self._llm = llm

    @property
    def llm(self) -> object:
        if self._llm is None:
            self._llm = _get_llm(self._settings)
        return self._llm

    def complete(self, request: CompletionRequest, enable_artifacts: bool = False) -> CompletionResult:
        try:
            msgs = build_messages(request, enable_artifacts)
        except KeyError:
            COMPLETIONS.labels(persona="unknown", outcome="rejected").inc()
            return CompletionResult(success=False, error_message="Unknown persona")
        try:
            res = self.llm.invoke(msgs)  # type: ignore[attr-defined]
            text = res.content if hasattr(res, "content") else str(res)
            if not text:
                raise RuntimeError("llm_empty_response")
        except Exception as exc:
            LOG.warning("completion_failed", extra={"persona": request.persona_id, "err": str(exc)})
            COMPLETIONS.labels(persona=request.persona_id, outcome="failed").inc()
            return CompletionResult(success=False, error_message=GENERIC_ERROR)
        COMPLETIONS.labels(persona=request.persona_id, outcome="ok").inc()
        return CompletionResult(success=True, response_text=str(text))

    async def acomplete(self, request: CompletionRequest, enable_artifacts: bool = False) -> CompletionResult:
        return await asyncio.to_thread(self.complete, request, enable_artifacts)
