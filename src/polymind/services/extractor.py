"""Lift fenced blocks out of model replies.

Models are prompted to wrap rich content in triple-backtick fences tagged with
a type hint (```` ```mermaid ````, ```` ```svg ````, ```` ```tsx ```` ...). This
module finds those regions, turns each into a :class:`ContentArtifact` and
returns the prose that is left over.

Fences are matched in a single left-to-right pass: the leftmost opening
marker wins and its body runs to the nearest following closing marker.
Fences do not nest, so an inner opening marker closes the outer region. An
opening marker without a closing one is left in the text as prose.
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional, Tuple

from ..domain.artifact_models import ArtifactType, ContentArtifact, ParsedMessage, Segment

# ```info-string\n body ```; the whole opener line is consumed.
_FENCE_RE = re.compile(r"```(?P<info>[^\n`]*)\r?\n(?P<body>.*?)```", re.DOTALL)
_TITLE_RE = re.compile(r"\[([^\]\n]*)\]")

_TAG_TYPES = {
    "mermaid": ArtifactType.MERMAID,
    "svg": ArtifactType.SVG,
    "html": ArtifactType.HTML,
    "jsx": ArtifactType.REACT,
    "tsx": ArtifactType.REACT,
    "markdown": ArtifactType.MARKDOWN,
    "md": ArtifactType.MARKDOWN,
}


def classify(tag: Optional[str]) -> Tuple[ArtifactType, Optional[str]]:
    """Map a fence tag to an artifact type and highlighter language."""
    key = (tag or "").strip().lower()
    kind = _TAG_TYPES.get(key)
    if kind is None:
        return ArtifactType.CODE, key or "plaintext"
    if kind is ArtifactType.REACT:
        return kind, key
    return kind, None


def parse_info(info: Optional[str]) -> Tuple[str, Optional[str]]:
    """Split an opener's info string into its tag (first word) and title.

    ``mermaid [Family Tree]`` -> ("mermaid", "Family Tree"). Any other words
    after the tag (``python title=demo``) are ignored.
    """
    info = info or ""
    match = _TITLE_RE.search(info)
    title = match.group(1).strip() if match else ""
    words = _TITLE_RE.sub(" ", info).split()
    return (words[0] if words else ""), (title or None)


def _clean_body(body: str) -> str:
    # Keep first-line indentation; drop blank lines around the body.
    return body.rstrip().lstrip("\r\n")


def _iter_fences(text: str) -> Iterator[Tuple[int, int, ContentArtifact]]:
    for match in _FENCE_RE.finditer(text):
        tag, title = parse_info(match.group("info"))
        kind, language = classify(tag)
        artifact = ContentArtifact(
            type=kind.value,
            content=_clean_body(match.group("body")),
            language=language,
            title=title,
        )
        yield match.start(), match.end(), artifact


def extract(text: str) -> ParsedMessage:
    """Split ``text`` into fenced artifacts and the remaining prose.

    Matched regions are removed in place, without placeholders. When nothing
    matches, the input comes back unchanged.
    """
    if not text:
        return ParsedMessage(artifacts=[], remaining_text=text or "")
    artifacts: List[ContentArtifact] = []
    pieces: List[str] = []
    last = 0
    for start, end, artifact in _iter_fences(text):
        pieces.append(text[last:start])
        artifacts.append(artifact)
        last = end
    if not artifacts:
        return ParsedMessage(artifacts=[], remaining_text=text)
    pieces.append(text[last:])
    return ParsedMessage(artifacts=artifacts, remaining_text="".join(pieces).strip())


def segments(text: str) -> List[Segment]:
    """Same scan as :func:`extract`, kept interleaved in source order.

    Empty or whitespace-only prose between fences is dropped.
    """
    out: List[Segment] = []
    last = 0
    for start, end, artifact in _iter_fences(text or ""):
        prose = text[last:start]
        if prose.strip():
            out.append(Segment(kind="text", text=prose.strip("\n")))
        out.append(Segment(kind="artifact", artifact=artifact))
        last = end
    tail = (text or "")[last:]
    if tail.strip():
        out.append(Segment(kind="text", text=tail.strip("\n")))
    return out
