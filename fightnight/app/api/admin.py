from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func
from sqlalchemy.future import select

from fightnight.app.core.database import get_db
from fightnight.app.models.catalog_model import User
from fightnight.app.models.match_model import Match, Fight
from fightnight.app.models.tournament_model import Tournament, Fighter

router = APIRouter()

COUNTED_TABLES = {
    "users": User,
    "tournaments": Tournament,
    "tournament_fighters": Fighter,
    "matches": Match,
    "fights": Fight,
}

@router.get("/status")
async def get_admin_status(db: AsyncSession = Depends(get_db)):
    """
    Get database statistics for admin dashboard.
    """
    counts = {}
    for name, model in COUNTED_TABLES.items():
        counts[name] = await db.scalar(select(func.count()).select_from(model))
    counts["undone_fights"] = await db.scalar(
        select(func.count(Fight.id)).where(Fight.undone_at.is_not(None))
    )
    return counts
