"""
Statistics Engine

Win rates aggregated from the live fight log at three granularities:
- player: the user behind a fighter, across every tournament
- fighter: one tournament entry
- character: the character picked, whoever played it

Undone fights are ignored. Rates are plain floats (0-100); an identity or
pairing with no history is 50 / (50, 50).
"""

from typing import Tuple
from sqlalchemy import case, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from fightnight.app.core.errors import ValidationError
from fightnight.app.engine.stats import win_rate, head_to_head_rates
from fightnight.app.models.match_model import Fight
from fightnight.app.schemas.stats_schema import FighterIdentity, HeadToHead, MatchupStats, StatBundle
from fightnight.app.services.match_service import match_service

IDENTITY_COLUMNS = {
    "player": (Fight.winner_user_id, Fight.loser_user_id),
    "fighter": (Fight.winner_fighter_id, Fight.loser_fighter_id),
    "character": (Fight.winner_character_id, Fight.loser_character_id),
}


def _columns(granularity: str):
    try:
        return IDENTITY_COLUMNS[granularity]
    except KeyError:
        raise ValidationError(
            f"granularity must be one of {sorted(IDENTITY_COLUMNS)}",
            context={"granularity": granularity}
        )


def _identity(fighter) -> FighterIdentity:
    return FighterIdentity(
        fighter_id=fighter.id,
        user_id=fighter.user_id,
        character_id=fighter.character_id,
        display_name=fighter.user.username,
        character_name=fighter.character.name,
    )


class StatsService:
    async def overall_rate(self, db: AsyncSession, granularity: str, identity_id: int) -> float:
        winner_col, loser_col = _columns(granularity)
        result = await db.execute(
            select(
                func.count(Fight.id),
                func.coalesce(func.sum(case((winner_col == identity_id, 1), else_=0)), 0),
            ).where(
                Fight.undone_at.is_(None),
                or_(winner_col == identity_id, loser_col == identity_id)
            )
        )
        total, wins = result.one()
        return win_rate(wins, total)

    async def head_to_head_rate(
        self, db: AsyncSession, granularity: str, identity_a: int, identity_b: int
    ) -> Tuple[float, float]:
        winner_col, loser_col = _columns(granularity)
        a_beat_b = and_(winner_col == identity_a, loser_col == identity_b)
        b_beat_a = and_(winner_col == identity_b, loser_col == identity_a)
        result = await db.execute(
            select(
                func.coalesce(func.sum(case((a_beat_b, 1), else_=0)), 0),
                func.coalesce(func.sum(case((b_beat_a, 1), else_=0)), 0),
            ).where(
                Fight.undone_at.is_(None),
                or_(a_beat_b, b_beat_a)
            )
        )
        a_wins, b_wins = result.one()
        return head_to_head_rates(a_wins, b_wins)

    async def compute_stats(self, db: AsyncSession, match_id: int) -> StatBundle:
        """Stat bundle for a match whose two fighters are both known."""
        _, fighter_a, fighter_b = await match_service.resolve_fighters(db, match_id)

        ids = {
            "player": (fighter_a.user_id, fighter_b.user_id),
            "fighter": (fighter_a.id, fighter_b.id),
            "character": (fighter_a.character_id, fighter_b.character_id),
        }
        overall = {}
        versus = {}
        for granularity, (a, b) in ids.items():
            overall[f"{granularity}_a"] = await self.overall_rate(db, granularity, a)
            overall[f"{granularity}_b"] = await self.overall_rate(db, granularity, b)
            rate_a, rate_b = await self.head_to_head_rate(db, granularity, a, b)
            versus[f"{granularity}_h2h"] = HeadToHead(a=rate_a, b=rate_b)

        return StatBundle(
            match_id=match_id,
            fighter_a=_identity(fighter_a),
            fighter_b=_identity(fighter_b),
            stats=MatchupStats(**overall, **versus),
        )


stats_service = StatsService()
