from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fightnight.app.core.database import get_db
from fightnight.app.engine.commentary import commentator, Commentator
from fightnight.app.schemas.stats_schema import StatBundle, Commentary
from fightnight.app.services.stats_service import stats_service

router = APIRouter()


def get_commentator() -> Commentator:
    return commentator


@router.get("/{id}/stats", response_model=StatBundle)
async def get_match_stats(id: int, db: AsyncSession = Depends(get_db)):
    """Overall and head-to-head win rates for both fighters of a match."""
    return await stats_service.compute_stats(db, id)

@router.post("/{id}/commentary", response_model=Commentary)
async def get_match_commentary(
    id: int,
    db: AsyncSession = Depends(get_db),
    booth: Commentator = Depends(get_commentator)
):
    """Hype intro for a match. Falls back to a placeholder line if the model is unavailable."""
    bundle = await stats_service.compute_stats(db, id)
    return await booth.generate(bundle)
