"""Originality check endpoint."""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.deps import get_checker
from paperforge.errors import ValidationError
from paperforge.knowledge_base.models import OriginalityReport
from paperforge.originality.checker import MIN_TEXT_LENGTH

router = APIRouter(tags=["originality"])


class OriginalityRequest(BaseModel):
    text: Optional[str] = None


@router.post("/originality-check", response_model=OriginalityReport)
async def originality_check(body: OriginalityRequest, checker=Depends(get_checker)):
    if not body.text or len(body.text) < MIN_TEXT_LENGTH:
        raise ValidationError("Text too short for originality check")
    return checker.check(body.text)
