import base64
import types

import pytest
import requests

from polymind.services import rendering_engines as re_mod
from polymind.services.rendering_engines import EngineError, KrokiEngine, MermaidInkEngine, build_engine


def _resp(status: int, text: str):
    return types.SimpleNamespace(status_code=status, text=text)


def test_kroki_posts_diagram_text(monkeypatch):
    engine = KrokiEngine("https://kroki.example/", timeout=4)
    seen = {}

    def fake_post(url, data=None, headers=None, timeout=None):
        seen.update(url=url, data=data, timeout=timeout)
        return _resp(200, "<svg><g/></svg>")

    monkeypatch.setattr(engine._session, "post", fake_post)
    assert engine.render("graph TD\nA-->B") == "<svg><g/></svg>"
    assert seen["url"] == "https://kroki.example/mermaid/svg"
    assert seen["data"] == b"graph TD\nA-->B"
    assert seen["timeout"] == (3, 4)


def test_kroki_error_status_is_engine_error(monkeypatch):
    engine = KrokiEngine()
    monkeypatch.setattr(engine._session, "post", lambda *a, **k: _resp(400, "Syntax error"))
    with pytest.raises(EngineError):
        engine.render("graph TD\nA-->>>B")


def test_non_svg_body_is_engine_error(monkeypatch):
    engine = KrokiEngine()
    monkeypatch.setattr(engine._session, "post", lambda *a, **k: _resp(200, "<html>oops</html>"))
    with pytest.raises(EngineError):
        engine.render("graph TD\nA-->B")


def test_mermaid_ink_encodes_source_in_url(monkeypatch):
    engine = MermaidInkEngine("https://ink.example")
    seen = {}

    def fake_get(url, timeout=None):
        seen["url"] = url
        return _resp(200, "<svg/>")

    monkeypatch.setattr(engine._session, "get", fake_get)
    engine.render("pie\n\"a\": 1")
    encoded = seen["url"].rsplit("/", 1)[1]
    assert seen["url"].startswith("https://ink.example/svg/")
    assert base64.urlsafe_b64decode(encoded).decode("utf-8") == "pie\n\"a\": 1"


def test_network_failure_is_engine_error(monkeypatch):
    engine = MermaidInkEngine()

    def boom(*_a, **_k):
        raise requests.exceptions.ConnectionError("no route")

    monkeypatch.setattr(engine._session, "get", boom)
    with pytest.raises(EngineError, match="unavailable"):
        engine.render("graph TD\nA-->B")


def test_build_engine_by_name():
    assert isinstance(build_engine("kroki", "https://kroki.io"), KrokiEngine)
    assert isinstance(build_engine("Mermaid.Ink", "https://mermaid.ink"), MermaidInkEngine)
    with pytest.raises(ValueError):
        build_engine("graphviz", "https://example.com")


def test_sessions_do_not_retry():
    session = re_mod._build_session()
    adapter = session.get_adapter("https://kroki.io")
    assert adapter.max_retries.total == 0
