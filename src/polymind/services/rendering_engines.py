"""Adapters for the hosted Mermaid rendering services.

Both adapters turn diagram text into an SVG document over HTTP. They are
blocking; :mod:`polymind.services.diagram_renderer` runs them off the event
loop and owns timeouts and error containment.
"""

from __future__ import annotations

import base64
import logging
from typing import Protocol

import requests

logger = logging.getLogger(__name__)


class EngineError(RuntimeError):
    """The rendering engine rejected the diagram or could not be reached."""


class RenderingEngine(Protocol):
    name: str

    def render(self, source: str) -> str: ...


def _build_session() -> requests.Session:
    # Single attempt per diagram: no urllib3 retry adapter here.
    session = requests.Session()
    session.headers.update({"User-Agent": "polymind-diagram-renderer"})
    return session


def _check_svg(resp: requests.Response) -> str:
    if resp.status_code >= 400:
        raise EngineError(f"engine rejected diagram (status {resp.status_code})")
    body = resp.text or ""
    if "<svg" not in body:
        raise EngineError("engine returned no svg")
    return body


class KrokiEngine:
    name = "kroki"

    def __init__(self, base_url: str = "https://kroki.io", timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = (3, timeout)
        self._session = _build_session()

    def render(self, source: str) -> str:
        logger.debug("kroki_render", extra={"base_url": self.base_url, "chars": len(source)})
        try:
            resp = self._session.post(
                f"{self.base_url}/mermaid/svg",
                data=source.encode("utf-8"),
                headers={"Content-Type": "text/plain; charset=utf-8"},
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise EngineError("rendering engine unavailable") from exc
        return _check_svg(resp)


class MermaidInkEngine:
    name = "mermaid_ink"

    def __init__(self, base_url: str = "https://mermaid.ink", timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = (3, timeout)
        self._session = _build_session()

    @staticmethod
    def encode(source: str) -> str:
        return base64.urlsafe_b64encode(source.encode("utf-8")).decode("ascii")

    def render(self, source: str) -> str:
        url = f"{self.base_url}/svg/{self.encode(source)}"
        logger.debug("mermaid_ink_render", extra={"base_url": self.base_url, "chars": len(source)})
        try:
            resp = self._session.get(url, timeout=self._timeout)
        except requests.exceptions.RequestException as exc:
            raise EngineError("rendering engine unavailable") from exc
        return _check_svg(resp)


def build_engine(name: str, base_url: str, timeout: float = 10.0) -> RenderingEngine:
    key = (name or "").strip().lower()
    if key == "kroki":
        return KrokiEngine(base_url, timeout=timeout)
    if key in ("mermaid_ink", "mermaid.ink", "mermaidink"):
        return MermaidInkEngine(base_url, timeout=timeout)
    raise ValueError(f"Unknown rendering engine: {name}")
