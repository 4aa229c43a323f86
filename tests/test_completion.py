from __future__ import annotations

import asyncio

from polymind.config import Settings
from polymind.domain.chat_models import ChatTurn, CompletionRequest
from polymind.services import completion as cc
from polymind.services.personas import ARTIFACT_GUIDANCE

from .utils import StubLLM


def test_format_history_labels_speakers():
    turns = [
        ChatTurn(role="user", content="Hi"),
        ChatTurn(role="assistant", content="Hello!"),
    ]
    assert cc.format_history(turns) == "User: Hi\nAssistant: Hello!"
    assert cc.format_history([]) == ""


def test_build_messages_adds_artifact_guidance_for_cultural_persona():
    msgs = cc.build_messages(CompletionRequest(persona_id="cultural", user_text="Map festivals", history_text="User: hi"))
    assert msgs[0]["role"] == "system"
    assert "Cultural Agent" in msgs[0]["content"]
    assert ARTIFACT_GUIDANCE in msgs[0]["content"]
    assert msgs[1]["content"] == "Chat History:\nUser: hi\n\nUser: Map festivals"


def test_build_messages_guidance_is_opt_in_for_other_personas():
    req = CompletionRequest(persona_id="build", user_text="Shed plans")
    assert ARTIFACT_GUIDANCE not in cc.build_messages(req)[0]["content"]
    assert ARTIFACT_GUIDANCE in cc.build_messages(req, enable_artifacts=True)[0]["content"]


def test_complete_returns_model_text():
    llm = StubLLM(reply="```mermaid\ngraph TD\nA-->B\n```")
    client = cc.CompletionClient(Settings(llm_api_key="k"), llm=llm)
    result = client.complete(CompletionRequest(persona_id="missing", user_text="What am I missing?"))
    assert result.success is True
    assert result.response_text.startswith("```mermaid")
    assert len(llm.calls) == 1


def test_complete_failure_is_generic_and_not_retried():
    llm = StubLLM(error=RuntimeError("429 rate limited"))
    client = cc.CompletionClient(Settings(llm_api_key="k"), llm=llm)
    result = client.complete(CompletionRequest(persona_id="build", user_text="Help"))
    assert result.success is False
    assert result.error_message == cc.GENERIC_ERROR
    assert "429" not in result.error_message
    assert len(llm.calls) == 1


def test_complete_empty_reply_is_failure():
    client = cc.CompletionClient(Settings(llm_api_key="k"), llm=StubLLM(reply=""))
    assert client.complete(CompletionRequest(persona_id="build", user_text="Help")).success is False


def test_complete_unknown_persona():
    llm = StubLLM()
    client = cc.CompletionClient(Settings(llm_api_key="k"), llm=llm)
    result = client.complete(CompletionRequest(persona_id="nobody", user_text="Hi"))
    assert result.success is False
    assert result.error_message == "Unknown persona"
    assert llm.calls == []


def test_acomplete_runs_off_loop():
    client = cc.CompletionClient(Settings(llm_api_key="k"), llm=StubLLM(reply="async ok"))
    result = asyncio.run(client.acomplete(CompletionRequest(persona_id="build", user_text="Hi")))
    assert result.response_text == "async ok"


def test_llm_client_built_from_settings_without_retries(monkeypatch):
    captured = {}

    class FakeChatOpenAI:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def invoke(self, msgs):
            return type("Resp", (), {"content": "hi"})()

    monkeypatch.setattr(cc, "ChatOpenAI", FakeChatOpenAI)
    settings = Settings(
        llm_provider="groq",
        llm_model="llama-3.1-8b-instant",
        llm_base_url="https://api.groq.com/openai/v1",
        llm_api_key="secret",
    )
    client = cc.CompletionClient(settings)
    assert client.complete(CompletionRequest(persona_id="build", user_text="Hi")).success
    assert captured["max_retries"] == 0
    assert captured["model"] == "llama-3.1-8b-instant"
    assert captured["base_url"] == "https://api.groq.com/openai/v1"
    assert captured["temperature"] == 0.7
