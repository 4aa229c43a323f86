"""Mermaid diagram rendering with containment.

A bad diagram must never take the page down with it: every failure path in
:meth:`DiagramRenderer.render` ends in a :class:`Failed` value with a short,
user-safe reason. Raw diagram text is only carried on ``Failed.debug_source``
for a hidden debug affordance.

The engine configuration is built once by :func:`initialize_engine` and
handed to the renderer; nothing mutates it afterwards.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from ..config import Settings
from ..observability.metrics import DIAGRAM_RENDERS
from .rendering_engines import EngineError, RenderingEngine, build_engine

logger = logging.getLogger(__name__)

NO_CONTENT = "no diagram content"
TIMED_OUT = "diagram rendering timed out"
REJECTED = "diagram could not be rendered"
CANCELLED = "diagram render cancelled"

DEFAULT_DECLARATION = "flowchart TD"

_DECLARATION_RE = re.compile(
    r"^(flowchart|graph|sequenceDiagram|classDiagram|stateDiagram|gantt|pie|erDiagram|journey)(?:-v2)?\b"
)
_FLOW_KINDS = ("flowchart", "graph")

# Lines that carry styling or directives rather than node labels.
_SKIP_LABEL_PREFIXES = ("%%", "classDef", "class ", "style ", "linkStyle", "click ")

_LABEL_PATTERNS = (
    ("|", "|", re.compile(r"\|([^|\n]*)\|")),
    ("[", "]", re.compile(r"\[(?![\[(/\\])([^\[\]\n]*)\]")),
    ("{", "}", re.compile(r"\{(?!\{)([^{}\n]*)\}")),
    ("(", ")", re.compile(r"\((?![(\[])([^()\[\]\n]*)\)")),
    ('"', '"', re.compile(r'"([^"\n]*)"')),
)
_LABEL_DISALLOWED_RE = re.compile(r"[^\w .,:;!?'/&-]", re.UNICODE)


class DiagramRenderState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RENDERED = "rendered"
    FAILED = "failed"


@dataclass(frozen=True)
class Rendered:
    svg: str


@dataclass(frozen=True)
class Failed:
    reason: str
    debug_source: Optional[str] = field(default=None, repr=False)


RenderResult = Union[Rendered, Failed]


@dataclass(frozen=True)
class EngineConfig:
    """Process-wide Mermaid settings, emitted as an init directive."""

    theme: str = "dark"
    security_level: str = "loose"
    font_family: str = "Inter, sans-serif"
    font_size: str = "16px"
    curve: str = "basis"
    padding: int = 20
    html_labels: bool = True
    primary_color: str = "#3b82f6"
    primary_text_color: str = "#e5e7eb"
    primary_border_color: str = "#4b5563"
    line_color: str = "#6b7280"

    def as_mermaid(self) -> Dict[str, Any]:
        return {
            "theme": self.theme,
            "securityLevel": self.security_level,
            "fontFamily": self.font_family,
            "flowchart": {
                "curve": self.curve,
                "padding": self.padding,
                "htmlLabels": self.html_labels,
                "useMaxWidth": False,
            },
            "themeVariables": {
                "fontSize": self.font_size,
                "fontFamily": self.font_family,
                "primaryColor": self.primary_color,
                "primaryTextColor": self.primary_text_color,
                "primaryBorderColor": self.primary_border_color,
                "lineColor": self.line_color,
            },
        }

    def init_directive(self) -> str:
        return "%%{init: " + json.dumps(self.as_mermaid(), separators=(",", ":")) + "}%%"


@dataclass(frozen=True)
class EngineHandle:
    engine: RenderingEngine
    config: EngineConfig


def initialize_engine(settings: Settings, engine: Optional[RenderingEngine] = None) -> EngineHandle:
    """Build the rendering engine and its configuration once, at startup."""
    config = EngineConfig(theme=settings.diagram_theme)
    if engine is None:
        engine = build_engine(
            settings.render_engine,
            settings.render_engine_url,
            timeout=max(settings.render_timeout_s, 1.0),
        )
    logger.info("Diagram engine initialized name=%s theme=%s", getattr(engine, "name", "custom"), config.theme)
    return EngineHandle(engine=engine, config=config)


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def _first_meaningful_line(source: str) -> str:
    for line in source.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("%%"):
            continue
        return stripped
    return ""


def declared_kind(source: str) -> Optional[str]:
    match = _DECLARATION_RE.match(_first_meaningful_line(source))
    return match.group(1) if match else None


def normalize_source(source: str) -> str:
    """Prepend a flowchart declaration when the diagram kind is missing."""
    text = source.strip()
    if declared_kind(text) is None:
        return f"{DEFAULT_DECLARATION}\n{text}"
    return text


def shorten_label(label: str, max_length: int = 60) -> str:
    cleaned = _LABEL_DISALLOWED_RE.sub("", label)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if not cleaned:
        return label
    if len(cleaned) > max_length:
        cleaned = cleaned[: max(1, max_length - 3)].rstrip() + "..."
    return cleaned


def sanitize_labels(source: str, max_length: int = 60) -> str:
    """Best-effort cleanup of free-form node and edge labels.

    Only flowcharts are touched; other diagram kinds give brackets other
    meanings.
    """
    if declared_kind(source) not in _FLOW_KINDS:
        return source
    out = []
    for line in source.splitlines():
        stripped = line.strip()
        if stripped.startswith(_SKIP_LABEL_PREFIXES) or _DECLARATION_RE.match(stripped):
            out.append(line)
            continue
        for opener, closer, pattern in _LABEL_PATTERNS:
            line = pattern.sub(
                lambda m, o=opener, c=closer: f"{o}{shorten_label(m.group(1), max_length)}{c}",
                line,
            )
        out.append(line)
    return "\n".join(out)


_SVG_OPEN_RE = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_DIMENSION_RE = re.compile(r'\s(width|height)\s*=\s*"([^"]*)"', re.IGNORECASE)


def make_responsive(svg: str) -> str:
    """Fluid width, preserved aspect ratio, no fixed height."""
    match = _SVG_OPEN_RE.search(svg)
    if not match:
        return svg
    tag = match.group(0)
    dims = {name.lower(): value for name, value in _DIMENSION_RE.findall(tag)}
    new_tag = _DIMENSION_RE.sub("", tag)
    new_tag = re.sub(r'\s(style|preserveAspectRatio)\s*=\s*"[^"]*"', "", new_tag, flags=re.IGNORECASE)
    attrs = ' width="100%" style="max-width: 100%; height: auto;" preserveAspectRatio="xMidYMid meet"'
    if "viewbox" not in new_tag.lower():
        w = re.match(r"^\s*([\d.]+)(px)?\s*$", dims.get("width", ""))
        h = re.match(r"^\s*([\d.]+)(px)?\s*$", dims.get("height", ""))
        if w and h:
            attrs += f' viewBox="0 0 {w.group(1)} {h.group(1)}"'
    closing = "/>" if new_tag.endswith("/>") else ">"
    new_tag = new_tag[: -len(closing)].rstrip() + attrs + closing
    return svg[: match.start()] + new_tag + svg[match.end():]


class DiagramRenderer:
    def __init__(
        self,
        handle: EngineHandle,
        timeout_s: float = 5.0,
        sanitize: bool = True,
        max_label_length: int = 60,
    ) -> None:
        self._handle = handle
        self.timeout_s = timeout_s
        self.sanitize = sanitize
        self.max_label_length = max_label_length

    @classmethod
    def from_settings(cls, settings: Settings, handle: EngineHandle) -> "DiagramRenderer":
        return cls(
            handle,
            timeout_s=settings.render_timeout_s,
            sanitize=settings.sanitize_labels,
            max_label_length=settings.max_label_length,
        )

    def prepare(self, source: str) -> str:
        text = normalize_source(source)
        if self.sanitize:
            text = sanitize_labels(text, self.max_label_length)
        return f"{self._handle.config.init_directive()}\n{text}"

    async def render(self, source: Any, token: Optional[CancellationToken] = None) -> RenderResult:
        """Render one diagram; never raises.

        A single attempt is made. The token is checked before the engine is
        called; checking it before applying the result is the caller's job.
        """
        if not isinstance(source, str) or not source.strip():
            DIAGRAM_RENDERS.labels(outcome="empty").inc()
            return Failed(NO_CONTENT)
        if token is not None and token.cancelled:
            return Failed(CANCELLED, debug_source=source)
        try:
            prepared = self.prepare(source)
            svg = await asyncio.wait_for(
                asyncio.to_thread(self._handle.engine.render, prepared),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("diagram_render_timeout", extra={"timeout_s": self.timeout_s})
            DIAGRAM_RENDERS.labels(outcome="timeout").inc()
            return Failed(TIMED_OUT, debug_source=source)
        except EngineError as exc:
            logger.warning("diagram_render_failed", extra={"err": str(exc)})
            DIAGRAM_RENDERS.labels(outcome="failed").inc()
            return Failed(REJECTED, debug_source=source)
        except Exception:
            logger.exception("diagram_render_error")
            DIAGRAM_RENDERS.labels(outcome="failed").inc()
            return Failed(REJECTED, debug_source=source)
        DIAGRAM_RENDERS.labels(outcome="rendered").inc()
        return Rendered(svg=make_responsive(svg))


class DiagramView:
    """Lifecycle of one on-page diagram.

    A new source supersedes whatever render is still in flight; the older
    attempt keeps running but its result is dropped.
    """

    def __init__(self, renderer: DiagramRenderer) -> None:
        self._renderer = renderer
        self._token: Optional[CancellationToken] = None
        self._pending: Optional[asyncio.Future] = None
        self.source: Optional[str] = None
        self.state = DiagramRenderState.IDLE
        self.result: Optional[RenderResult] = None

    async def update(self, source: str) -> Optional[RenderResult]:
        """Render ``source``; returns None when superseded before finishing.

        The same source while rendered, failed or still loading never starts
        a second attempt; a caller arriving mid-flight shares the pending one.
        """
        if source == self.source:
            if self.state in (DiagramRenderState.RENDERED, DiagramRenderState.FAILED):
                return self.result
            if self.state is DiagramRenderState.LOADING and self._pending is not None and self._token is not None:
                return await self._settle(self._token, self._pending)
        if self._token is not None:
            self._token.cancel()
        token = CancellationToken()
        self._token = token
        self.source = source
        self.result = None
        self.state = DiagramRenderState.LOADING
        pending = asyncio.ensure_future(self._renderer.render(source, token))
        self._pending = pending
        return await self._settle(token, pending)

    async def _settle(self, token: CancellationToken, pending: asyncio.Future) -> Optional[RenderResult]:
        result = await asyncio.shield(pending)
        if self._pending is pending:
            self._pending = None
        if token.cancelled:
            return None
        self.result = result
        self.state = DiagramRenderState.RENDERED if isinstance(result, Rendered) else DiagramRenderState.FAILED
        return result

    def dispose(self) -> None:
        if self._token is not None:
            self._token.cancel()
        self._token = None
        self._pending = None
