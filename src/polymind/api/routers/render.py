from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ...domain.artifact_models import MessageView, ParsedMessage
from ...domain.chat_models import RenderRequest
from ...services.extractor import extract
from ...services.presenter import ArtifactPresenter, highlight_css
from ..deps import get_presenter

router = APIRouter(prefix="/render", tags=["render"])


@router.post("", response_model=MessageView)
async def render_text(req: RenderRequest, presenter: ArtifactPresenter = Depends(get_presenter)) -> MessageView:
    return await presenter.render_message(req.text)


@router.post("/extract", response_model=ParsedMessage)
def extract_text(req: RenderRequest) -> ParsedMessage:
    return extract(req.text)


@router.get("/highlight.css", response_class=PlainTextResponse)
def highlight_stylesheet() -> PlainTextResponse:
    return PlainTextResponse(highlight_css(), media_type="text/css")
