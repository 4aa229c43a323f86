from __future__ import annotations

import logging
from typing import List, Optional

from ..domain.chat_models import ChatMessage, ChatTurn, CompletionRequest, Persona
from ..infrastructure.chat_store import ChatStore
from .completion import CompletionClient, format_history
from .personas import get_persona

logger = logging.getLogger(__name__)

APOLOGY = "I apologize, but I encountered an error. Please try again."


class ConversationSession:
    """Ordered transcript for one persona, persisted on every change.

    Works with raw message text only; rendering happens elsewhere.
    """

    def __init__(
        self,
        persona_id: str,
        store: ChatStore,
        completion: CompletionClient,
        start_fresh: bool = False,
    ) -> None:
        persona = get_persona(persona_id)
        if persona is None:
            raise KeyError(f"Unknown persona: {persona_id}")
        self.persona: Persona = persona
        self._store = store
        self._completion = completion
        self.messages: List[ChatMessage] = []
        if start_fresh:
            self.clear()
        else:
            self.restore()

    @property
    def persona_id(self) -> str:
        return self.persona.persona_id

    def restore(self) -> List[ChatMessage]:
        self.messages = self._store.list_messages(self.persona_id)
        return self.messages

    def greeting(self) -> str:
        return self.persona.greeting

    def add_message(self, role: str, content: str, message_id: Optional[str] = None) -> ChatMessage:
        msg = self._store.add_message(self.persona_id, role=role, content=content, message_id=message_id)
        self.messages.append(msg)
        return msg

    def clear(self) -> None:
        self.messages = []
        self._store.clear(self.persona_id)

    def history_text(self, exclude_latest: bool = True) -> str:
        turns = self.messages[:-1] if exclude_latest and self.messages else self.messages
        return format_history(ChatTurn(role=m.role, content=m.content) for m in turns)

    async def send(self, user_text: str) -> Optional[ChatMessage]:
        """Append the user turn and the assistant reply (or an apology)."""
        text = (user_text or "").strip()
        if not text:
            return None
        self.add_message("user", text)
        request = CompletionRequest(
            persona_id=self.persona_id,
            user_text=text,
            history_text=self.history_text(),
        )
        result = await self._completion.acomplete(request)
        if result.success and result.response_text:
            return self.add_message("assistant", result.response_text)
        logger.info("conversation_reply_failed", extra={"persona": self.persona_id, "err": result.error_message})
        return self.add_message("assistant", APOLOGY)
