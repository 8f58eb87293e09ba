from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

# --- Requests ---

class TournamentCreate(BaseModel):
    game_id: int
    owner_id: int
    num_prelim_matches: int
    elimination_type: str = "single"
    name: Optional[str] = None

class JoinRequest(BaseModel):
    user_id: int
    character_id: int

class ResultRequest(BaseModel):
    winner_fighter_id: int

class PlayerCreate(BaseModel):
    username: str

# --- Responses ---

class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str

class GameResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str

class CharacterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    game_id: int
    name: str

class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    game_id: int
    owner_id: int
    name: str
    num_prelim_matches: int
    elimination_type: str
    status: str
    fighter_count: int
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class FighterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    user_id: int
    character_id: int
    seed_index: int

class SlotSourceResponse(BaseModel):
    kind: str
    ref_id: int
    outcome: str

class MatchResponse(BaseModel):
    id: int
    tournament_id: int
    round_number: int
    match_index: int
    bracket_side: str
    source_a: SlotSourceResponse
    source_b: SlotSourceResponse
    winner_fighter_id: Optional[int] = None
    completed_at: Optional[datetime] = None

    # Resolved participants; None until the feeding match has a result
    fighter_a_id: Optional[int] = None
    fighter_b_id: Optional[int] = None
    ready: bool = False

class JoinResponse(BaseModel):
    fighter_id: int
    seed_index: int
    tournament_status: str

class TournamentDetail(BaseModel):
    tournament: TournamentResponse
    fighters: List[FighterResponse]
    matches: List[MatchResponse]

class NextMatchResponse(BaseModel):
    match: Optional[MatchResponse] = None

class ResultResponse(BaseModel):
    match_id: int
    winner_fighter_id: int
    loser_fighter_id: int
    fight_id: int
    tournament_status: str

class UndoResponse(BaseModel):
    match_id: int
    undone_fight_id: int
