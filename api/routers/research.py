"""Paper generation and export endpoints."""
import io
import logging
from typing import Any, Optional

import pydantic
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from api.deps import get_db, get_exporter, get_generator, get_optional_user
from paperforge.errors import ValidationError
from paperforge.export.exporter import EXPORT_FORMATS
from paperforge.generation.generator import (
    DEFAULT_WORD_COUNT,
    MAX_WORD_COUNT,
    MIN_WORD_COUNT,
    parse_citation_style,
)
from paperforge.knowledge_base.models import CitationStyle, GeneratedPaper, SavedPaper

logger = logging.getLogger(__name__)

router = APIRouter(tags=["research"])


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: Optional[str] = None
    word_count: int = Field(default=DEFAULT_WORD_COUNT, alias="wordCount")
    format: Optional[str] = None


class ExportRequest(BaseModel):
    paper: dict[str, Any]
    format: str


@router.get("/citation-styles")
async def list_citation_styles():
    return {
        "styles": [
            {"value": s.value, "label": s.label, "description": s.description}
            for s in CitationStyle
        ]
    }


@router.post("/papers/generate")
async def generate_paper(
    body: GenerateRequest,
    generator=Depends(get_generator),
    db=Depends(get_db),
    user=Depends(get_optional_user),
):
    topic = (body.topic or "").strip()
    if not topic:
        raise ValidationError("Topic is required")
    if not MIN_WORD_COUNT <= body.word_count <= MAX_WORD_COUNT:
        raise ValidationError(
            f"wordCount must be between {MIN_WORD_COUNT} and {MAX_WORD_COUNT}"
        )
    style = parse_citation_style(body.format)

    paper = await generator.generate(topic, body.word_count, style)

    # Saving to history is best-effort: the caller already has the paper
    if user is not None:
        try:
            saved = db.insert_paper(SavedPaper.from_generated(paper, user.id, topic))
            logger.info("Saved generated paper %s for user %s", saved.id, user.id)
        except Exception:
            logger.exception("Error saving paper to database")

    return {"paper": paper.model_dump(by_alias=True)}


@router.post("/papers/export")
async def export_paper(body: ExportRequest, exporter=Depends(get_exporter)):
    fmt = body.format.lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError("Invalid format")
    try:
        paper = GeneratedPaper.model_validate(body.paper)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid paper: {e.errors()[0]['msg']}") from e
    content = exporter.export(paper, fmt)
    media_type, filename = EXPORT_FORMATS[fmt]
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
