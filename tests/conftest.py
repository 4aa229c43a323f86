import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
src_str = str(ROOT / "src")
if src_str not in sys.path:
    sys.path.insert(0, src_str)

# The API module builds its app at import time and refuses to start without a key.
os.environ.setdefault("POLYMIND_LLM_API_KEY", "test-key")


@pytest.fixture(autouse=True)
def _reset_singletons(monkeypatch):
    """Each test starts with empty transcript and feedback stores."""
    from polymind.infrastructure import chat_store, feedback_store

    monkeypatch.setattr(chat_store, "_store", None, raising=False)
    monkeypatch.setattr(feedback_store, "_sink", None, raising=False)
    monkeypatch.delenv("POLYMIND_CHAT_STORE_IMPL", raising=False)
