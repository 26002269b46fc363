"""Paper history endpoints. Every query is scoped to the signed-in user."""
import logging
from typing import Any, Optional

import pydantic
from fastapi import APIRouter, Body, Depends, Query

from api.deps import get_current_user, get_db
from paperforge.errors import NotFoundError, ValidationError
from paperforge.knowledge_base.models import PaperCreate, SavedPaper

logger = logging.getLogger(__name__)

router = APIRouter(tags=["papers"])

_REQUIRED_FIELDS = list(PaperCreate.model_fields)


@router.get("/papers")
async def list_papers(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    search: Optional[str] = None,
    db=Depends(get_db),
    user=Depends(get_current_user),
):
    page = db.list_papers(user.id, limit=limit, offset=offset, search=search or None)
    return page.model_dump(mode="json")


@router.post("/papers", status_code=201)
async def create_paper(
    payload: dict[str, Any] = Body(...),
    db=Depends(get_db),
    user=Depends(get_current_user),
):
    missing = [name for name in _REQUIRED_FIELDS if not payload.get(name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        data = PaperCreate.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid paper: {e.errors()[0]['msg']}") from e
    saved = db.insert_paper(SavedPaper(user_id=user.id, **data.model_dump()))
    logger.info("Saved paper %s for user %s", saved.id, user.id)
    return {"paper": saved.model_dump(mode="json")}


@router.get("/papers/{paper_id}")
async def get_paper(paper_id: str, db=Depends(get_db), user=Depends(get_current_user)):
    paper = db.get_paper(paper_id, user.id)
    if paper is None:
        raise NotFoundError("Paper not found")
    return {"paper": paper.model_dump(mode="json")}


@router.delete("/papers/{paper_id}")
async def delete_paper(paper_id: str, db=Depends(get_db), user=Depends(get_current_user)):
    if not db.delete_paper(paper_id, user.id):
        raise NotFoundError("Paper not found")
    return {"success": True}
