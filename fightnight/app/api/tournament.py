from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from fightnight.app.core.database import get_db
from fightnight.app.schemas.tournament_schema import (
    TournamentCreate, TournamentResponse, TournamentDetail,
    JoinRequest, JoinResponse, NextMatchResponse
)
from fightnight.app.services.tournament_service import tournament_service

router = APIRouter()

@router.post("", response_model=TournamentResponse)
async def create_tournament(payload: TournamentCreate, db: AsyncSession = Depends(get_db)):
    return await tournament_service.create_tournament(
        db,
        game_id=payload.game_id,
        owner_id=payload.owner_id,
        num_prelim_matches=payload.num_prelim_matches,
        elimination_type=payload.elimination_type,
        name=payload.name
    )

@router.get("", response_model=List[TournamentResponse])
async def list_tournaments(status: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """Newest first. Optional filter: pending, in_progress or completed."""
    return await tournament_service.list_tournaments(db, status)

@router.get("/{id}", response_model=TournamentDetail)
async def get_tournament(id: int, db: AsyncSession = Depends(get_db)):
    """Tournament with fighters in seed order and matches in bracket order."""
    return await tournament_service.get_tournament_detail(db, id)

@router.post("/{id}/join", response_model=JoinResponse)
async def join_tournament(id: int, payload: JoinRequest, db: AsyncSession = Depends(get_db)):
    fighter, tournament = await tournament_service.join_tournament(
        db, id, payload.user_id, payload.character_id
    )
    return JoinResponse(
        fighter_id=fighter.id,
        seed_index=fighter.seed_index,
        tournament_status=tournament.status
    )

@router.get("/{id}/next-match", response_model=NextMatchResponse)
async def next_match(id: int, db: AsyncSession = Depends(get_db)):
    match = await tournament_service.next_playable_match(db, id)
    return NextMatchResponse(match=match)
