from pydantic import BaseModel, Field

class FighterIdentity(BaseModel):
    fighter_id: int
    user_id: int
    character_id: int
    display_name: str
    character_name: str

class HeadToHead(BaseModel):
    # a + b == 100
    a: float
    b: float

class MatchupStats(BaseModel):
    """Win rates (0-100) for both sides of a match. 50 means no history."""
    player_a: float = Field(description="Fighter A's user, all fights")
    fighter_a: float = Field(description="Fighter A's tournament entry, all fights")
    character_a: float = Field(description="Fighter A's character, all fights")
    player_b: float
    fighter_b: float
    character_b: float

    player_h2h: HeadToHead
    fighter_h2h: HeadToHead
    character_h2h: HeadToHead

class StatBundle(BaseModel):
    match_id: int
    fighter_a: FighterIdentity
    fighter_b: FighterIdentity
    stats: MatchupStats

class Commentary(BaseModel):
    commentary: str
    fallback: bool = False  # True when the placeholder stood in for the model
