from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from fightnight.app.core.database import get_db
from fightnight.app.schemas.tournament_schema import PlayerCreate, PlayerResponse, GameResponse, CharacterResponse
from fightnight.app.services.catalog_service import catalog_service

router = APIRouter()

@router.post("/players", response_model=PlayerResponse)
async def create_player(payload: PlayerCreate, db: AsyncSession = Depends(get_db)):
    return await catalog_service.create_player(db, payload.username)

@router.get("/players/{id}", response_model=PlayerResponse)
async def get_player(id: int, db: AsyncSession = Depends(get_db)):
    return await catalog_service.get_player(db, id)

@router.get("/games", response_model=List[GameResponse])
async def list_games(db: AsyncSession = Depends(get_db)):
    return await catalog_service.list_games(db)

@router.get("/games/{id}/characters", response_model=List[CharacterResponse])
async def list_characters(id: int, db: AsyncSession = Depends(get_db)):
    """Selectable characters for a game, by name."""
    return await catalog_service.list_characters(db, id)
