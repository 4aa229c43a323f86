from __future__ import annotations

from typing import List
from fastapi import APIRouter, Depends

from ...domain.chat_models import Persona, PersonaSummary
from ...services.personas import persona_summaries
from ..deps import require_persona

router = APIRouter(prefix="/personas", tags=["personas"])


@router.get("", response_model=List[PersonaSummary])
def list_personas() -> List[PersonaSummary]:
    return persona_summaries()


@router.get("/{persona_id}", response_model=Persona)
def get_persona(persona: Persona = Depends(require_persona)) -> Persona:
    return persona
