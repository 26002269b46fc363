"""Usage statistics endpoint."""
from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_db, get_router

router = APIRouter(tags=["stats"])


@router.get("/stats")
async def get_stats(
    db=Depends(get_db),
    llm_router=Depends(get_router),
    user=Depends(get_current_user),
):
    return {
        "papers_saved": db.count_papers(user.id),
        "llm_usage": llm_router.get_usage_summary(),
    }
