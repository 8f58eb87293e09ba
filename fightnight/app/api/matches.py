from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fightnight.app.core.database import get_db
from fightnight.app.schemas.tournament_schema import MatchResponse, ResultRequest, ResultResponse, UndoResponse
from fightnight.app.services.match_service import match_service

router = APIRouter()

@router.get("/{id}", response_model=MatchResponse)
async def get_match(id: int, db: AsyncSession = Depends(get_db)):
    return await match_service.get_match_view(db, id)

@router.post("/{id}/result", response_model=ResultResponse)
async def record_result(id: int, payload: ResultRequest, db: AsyncSession = Depends(get_db)):
    return await match_service.record_result(db, id, payload.winner_fighter_id)

@router.post("/{id}/undo", response_model=UndoResponse)
async def undo_result(id: int, db: AsyncSession = Depends(get_db)):
    """Reverts a result. Refused once a later match has used it."""
    return await match_service.undo_result(db, id)
