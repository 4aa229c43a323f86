from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import UTC, datetime
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Protocol
import json
import logging
import os
import uuid

from ..domain.chat_models import ChatMessage

logger = logging.getLogger(__name__)

_ROLES = ("user", "assistant")


class ChatStore(Protocol):
    def list_messages(self, persona_id: str) -> List[ChatMessage]: ...

    def get_message(self, persona_id: str, message_id: str) -> Optional[ChatMessage]: ...

    def add_message(self, persona_id: str, role: str, content: str, message_id: Optional[str] = None) -> ChatMessage: ...

    def clear(self, persona_id: str) -> None: ...


@dataclass
class _Message:
    id: str
    role: str
    content: str
    created_at: str


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class InMemoryChatStore:
    """Ordered transcripts keyed by persona."""

    def __init__(self) -> None:
        self._messages: Dict[str, List[_Message]] = {}
        self._lock = RLock()

    def _message_model(self, message: _Message) -> ChatMessage:
        return ChatMessage(**message.__dict__)

    def _persist(self) -> None:
        """Hook for durable subclasses; called after every mutation."""

    def list_messages(self, persona_id: str) -> List[ChatMessage]:
        with self._lock:
            return [self._message_model(m) for m in self._messages.get(persona_id, [])]

    def get_message(self, persona_id: str, message_id: str) -> Optional[ChatMessage]:
        with self._lock:
            for m in self._messages.get(persona_id, []):
                if m.id == message_id:
                    return self._message_model(m)
            return None

    def add_message(
        self,
        persona_id: str,
        role: str,
        content: str,
        message_id: Optional[str] = None,
    ) -> ChatMessage:
        with self._lock:
            msg = _Message(
                id=message_id or uuid.uuid4().hex,
                role=role,
                content=content,
                created_at=_now_iso(),
            )
            self._messages.setdefault(persona_id, []).append(msg)
            self._persist()
            return self._message_model(msg)

    def clear(self, persona_id: str) -> None:
        with self._lock:
            if self._messages.pop(persona_id, None) is not None:
                self._persist()


class FileChatStore(InMemoryChatStore):
    """JSON file-backed transcripts for development persistence.

    Structure: a single JSON object mapping persona_id -> list of messages.
    """

    def __init__(self, file_path: Optional[str] = None) -> None:
        super().__init__()
        root = Path(__file__).resolve().parents[3]
        default_path = root / "run" / "chat_history.json"
        self._path = Path(file_path or os.getenv("POLYMIND_CHAT_STORE_FILE", str(default_path)))
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("chat_store_unreadable", extra={"path": str(self._path)})
            return
        for persona_id, items in (data or {}).items():
            msgs: List[_Message] = []
            for item in items or []:
                try:
                    role = str(item["role"])
                    if role not in _ROLES:
                        logger.warning("chat_store_row_skipped", extra={"persona_id": persona_id, "role": role})
                        continue
                    msgs.append(
                        _Message(
                            id=str(item["id"]),
                            role=role,
                            content=str(item["content"]),
                            created_at=str(item.get("created_at") or _now_iso()),
                        )
                    )
                except (KeyError, TypeError):
                    continue
            self._messages[persona_id] = msgs

    def _persist(self) -> None:
        obj = {pid: [asdict(m) for m in msgs] for pid, msgs in self._messages.items()}
        self._path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


_store: ChatStore | None = None


def get_chat_store() -> ChatStore:
    global _store
    if _store is not None:
        return _store
    impl = os.getenv("POLYMIND_CHAT_STORE_IMPL", "memory").lower()
    if impl == "file":
        _store = FileChatStore()
    else:
        _store = InMemoryChatStore()
    return _store
