from __future__ import annotations

import asyncio
import html
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from markdown_it import MarkdownIt
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

from ..domain.artifact_models import ArtifactType, ContentArtifact, MessageView, RenderedBlock
from .diagram_renderer import DiagramRenderer, Failed, Rendered
from .extractor import extract, segments

logger = logging.getLogger(__name__)

_FORMATTER = HtmlFormatter(cssclass="codehilite", nowrap=False)
_MARKDOWN = MarkdownIt("commonmark", {"html": False}).enable("table")


def highlight_code(code: str, language: Optional[str]) -> str:
    try:
        lexer = get_lexer_by_name(language or "text", stripall=False)
    except ClassNotFound:
        lexer = TextLexer()
    return highlight(code, lexer, _FORMATTER)


def render_markdown(text: str) -> str:
    return _MARKDOWN.render(text)


def highlight_css() -> str:
    return _FORMATTER.get_style_defs(".codehilite")


def _diagram_notice(failure: Failed) -> str:
    parts = [
        '<div class="diagram-error" role="note">',
        "<p>Failed to render diagram</p>",
        f'<p class="diagram-error-reason">{html.escape(failure.reason)}</p>',
    ]
    if failure.debug_source:
        parts.append(
            '<details class="diagram-debug"><summary>Diagram source</summary>'
            f"<pre>{html.escape(failure.debug_source)}</pre></details>"
        )
    parts.append("</div>")
    return "".join(parts)


class ArtifactPresenter:
    """Turn extracted artifacts into HTML blocks, one strategy per type.

    Types without a strategy are skipped rather than treated as errors, so a
    single odd tag never blanks out the rest of a message.
    """

    def __init__(self, renderer: DiagramRenderer) -> None:
        self._renderer = renderer
        self._strategies: Dict[str, Callable[[ContentArtifact], Awaitable[RenderedBlock]]] = {
            ArtifactType.MERMAID.value: self._present_mermaid,
            ArtifactType.CODE.value: self._present_code,
            ArtifactType.REACT.value: self._present_react,
            ArtifactType.SVG.value: self._present_svg,
            ArtifactType.HTML.value: self._present_html,
            ArtifactType.MARKDOWN.value: self._present_markdown,
            ArtifactType.TEXT.value: self._present_text,
        }

    async def present(self, artifacts: Sequence[ContentArtifact]) -> List[RenderedBlock]:
        results = await asyncio.gather(
            *(self._present_one(index, artifact) for index, artifact in enumerate(artifacts))
        )
        return [block for block in results if block is not None]

    async def render_message(self, text: str) -> MessageView:
        """Compose prose and artifact blocks in source order."""
        parsed = extract(text or "")
        parts = segments(text or "")
        artifacts = [seg.artifact for seg in parts if seg.kind == "artifact" and seg.artifact is not None]
        blocks = await self.present(artifacts)
        by_index = {block.index: block for block in blocks}

        out: List[str] = []
        artifact_index = 0
        for seg in parts:
            if seg.kind == "text":
                out.append(render_markdown(seg.text or ""))
                continue
            block = by_index.get(artifact_index)
            artifact_index += 1
            if block is not None:
                out.append(self.wrap(block))
        return MessageView(html="".join(out), blocks=blocks, remaining_text=parsed.remaining_text)

    @staticmethod
    def wrap(block: RenderedBlock) -> str:
        heading = f"<h3>{html.escape(block.title)}</h3>" if block.title else ""
        return f'<section class="artifact artifact-{html.escape(block.type)}">{heading}{block.html}</section>'

    async def _present_one(self, index: int, artifact: ContentArtifact) -> Optional[RenderedBlock]:
        strategy = self._strategies.get(artifact.type)
        if strategy is None:
            logger.debug("artifact_type_skipped", extra={"artifact_type": artifact.type, "index": index})
            return None
        try:
            block = await strategy(artifact)
        except Exception:
            logger.exception("artifact_present_failed")
            block = RenderedBlock(
                index=index,
                type=artifact.type,
                html=f"<pre>{html.escape(artifact.content)}</pre>",
                ok=False,
                error="artifact could not be displayed",
            )
        return block.model_copy(update={"index": index, "title": artifact.title})

    async def _present_mermaid(self, artifact: ContentArtifact) -> RenderedBlock:
        result = await self._renderer.render(artifact.content)
        if isinstance(result, Rendered):
            return RenderedBlock(index=0, type=artifact.type, html=f'<div class="diagram">{result.svg}</div>')
        return RenderedBlock(
            index=0,
            type=artifact.type,
            html=_diagram_notice(result),
            ok=False,
            error=result.reason,
        )

    async def _present_code(self, artifact: ContentArtifact) -> RenderedBlock:
        return RenderedBlock(index=0, type=artifact.type, html=highlight_code(artifact.content, artifact.language))

    async def _present_react(self, artifact: ContentArtifact) -> RenderedBlock:
        language = "typescript" if artifact.language == "tsx" else "javascript"
        return RenderedBlock(index=0, type=artifact.type, html=highlight_code(artifact.content, language))

    async def _present_svg(self, artifact: ContentArtifact) -> RenderedBlock:
        # Model output is trusted markup here.
        return RenderedBlock(index=0, type=artifact.type, html=f'<div class="artifact-markup">{artifact.content}</div>')

    async def _present_html(self, artifact: ContentArtifact) -> RenderedBlock:
        source = highlight_code(artifact.content, "html")
        return RenderedBlock(
            index=0,
            type=artifact.type,
            html=f'<div class="artifact-markup">{artifact.content}</div><div class="artifact-source">{source}</div>',
        )

    async def _present_markdown(self, artifact: ContentArtifact) -> RenderedBlock:
        return RenderedBlock(index=0, type=artifact.type, html=f'<div class="prose">{render_markdown(artifact.content)}</div>')

    async def _present_text(self, artifact: ContentArtifact) -> RenderedBlock:
        return RenderedBlock(
            index=0,
            type=artifact.type,
            html=f'<p class="whitespace-pre-wrap">{html.escape(artifact.content)}</p>',
        )
