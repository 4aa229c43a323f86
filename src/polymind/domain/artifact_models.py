from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict


class ArtifactType(str, Enum):
    MERMAID = "mermaid"
    CODE = "code"
    SVG = "svg"
    MARKDOWN = "markdown"
    HTML = "html"
    REACT = "react"
    TEXT = "text"


class ContentArtifact(BaseModel):
    """One typed unit of rich content lifted out of a model reply.

    ``type`` is kept as a plain string so that artifacts carrying a type the
    presenter does not know can still be represented (and skipped).
    """

    model_config = ConfigDict(frozen=True)

    type: str
    content: str
    language: Optional[str] = None
    title: Optional[str] = None


class ParsedMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    artifacts: List[ContentArtifact] = []
    remaining_text: str = ""


class Segment(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text", "artifact"]
    text: Optional[str] = None
    artifact: Optional[ContentArtifact] = None


class RenderedBlock(BaseModel):
    index: int
    type: str
    html: str
    title: Optional[str] = None
    ok: bool = True
    error: Optional[str] = None


class MessageView(BaseModel):
    html: str
    blocks: List[RenderedBlock] = []
    remaining_text: str = ""
