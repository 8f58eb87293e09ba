"""
Match Service - Result Recorder / Completion State Machine

Single source of truth for match outcomes. It handles:
- Resolving a match's fighters from the stored bracket
- Recording a result (match winner + fight log row + tournament completion)
- Reverting a result

Each mutating call is one transaction: it either commits everything or
rolls back and raises. Winners are written with a conditional UPDATE on
`winner_fighter_id IS NULL`, so two racing submissions cannot both land.

Undo never cascades. It is refused while any match fed by this one already
has a winner, and once the tournament is completed.
"""

import logging
from datetime import datetime, timezone
from sqlalchemy import update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from fightnight.app.core.errors import ConflictError, InvalidChoiceError, NotFoundError, UnresolvableError
from fightnight.app.engine.resolver import BracketArena
from fightnight.app.models.enums import SourceKind, TournamentStatus
from fightnight.app.models.match_model import Match, Fight
from fightnight.app.models.tournament_model import Tournament, Fighter
from fightnight.app.schemas.tournament_schema import (
    MatchResponse, SlotSourceResponse, ResultResponse, UndoResponse
)

logger = logging.getLogger(__name__)


async def load_arena(db: AsyncSession, tournament_id: int) -> BracketArena:
    """Reads one tournament's fighters, matches and live fights, bypassing stale identity-map state."""
    fighters = await db.execute(
        select(Fighter)
        .where(Fighter.tournament_id == tournament_id)
        .options(selectinload(Fighter.user), selectinload(Fighter.character))
        .execution_options(populate_existing=True)
    )
    matches = await db.execute(
        select(Match)
        .where(Match.tournament_id == tournament_id)
        .order_by(Match.round_number.asc(), Match.match_index.asc())
        .execution_options(populate_existing=True)
    )
    fights = await db.execute(
        select(Fight)
        .where(Fight.tournament_id == tournament_id, Fight.undone_at.is_(None))
        .execution_options(populate_existing=True)
    )
    return BracketArena(
        fighters.scalars().all(),
        matches.scalars().all(),
        fights.scalars().all()
    )


def describe_match(match: Match, arena: BracketArena) -> MatchResponse:
    fighter_a, fighter_b = arena.resolve(match)
    return MatchResponse(
        id=match.id,
        tournament_id=match.tournament_id,
        round_number=match.round_number,
        match_index=match.match_index,
        bracket_side=match.bracket_side,
        source_a=SlotSourceResponse(
            kind=match.source_a_type, ref_id=match.source_a_id, outcome=match.source_a_outcome
        ),
        source_b=SlotSourceResponse(
            kind=match.source_b_type, ref_id=match.source_b_id, outcome=match.source_b_outcome
        ),
        winner_fighter_id=match.winner_fighter_id,
        completed_at=match.completed_at,
        fighter_a_id=fighter_a.id if fighter_a else None,
        fighter_b_id=fighter_b.id if fighter_b else None,
        ready=fighter_a is not None and fighter_b is not None,
    )


class MatchService:
    """Centralized service for match resolution and results"""

    async def get_match(self, db: AsyncSession, match_id: int) -> Match:
        result = await db.execute(
            select(Match).where(Match.id == match_id).execution_options(populate_existing=True)
        )
        match = result.scalar_one_or_none()
        if not match:
            raise NotFoundError("Match not found", context={"match_id": match_id})
        return match

    async def _get_match_for_update(self, db: AsyncSession, match_id: int) -> Match:
        """
        Load match with row locking (FOR UPDATE) so no other transaction
        records or reverts it while we work.
        """
        result = await db.execute(
            select(Match).where(Match.id == match_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        match = result.scalar_one_or_none()
        if not match:
            raise NotFoundError("Match not found", context={"match_id": match_id})
        return match

    async def _lock_feeding_matches(self, db: AsyncSession, match: Match):
        """Lock the matches whose outcomes fill this one, so an undo on them has to wait."""
        parent_ids = [
            s.ref_id for s in (match.source_a, match.source_b) if s.kind == SourceKind.MATCH
        ]
        if parent_ids:
            await db.execute(select(Match.id).where(Match.id.in_(parent_ids)).with_for_update())

    async def get_match_view(self, db: AsyncSession, match_id: int) -> MatchResponse:
        match = await self.get_match(db, match_id)
        arena = await load_arena(db, match.tournament_id)
        return describe_match(match, arena)

    async def resolve_fighters(self, db: AsyncSession, match_id: int):
        """Both fighters of a match; raises UnresolvableError while either is undetermined."""
        match = await self.get_match(db, match_id)
        arena = await load_arena(db, match.tournament_id)
        fighter_a, fighter_b = arena.resolve(match)
        if fighter_a is None or fighter_b is None:
            raise UnresolvableError(
                "Cannot resolve fighters for this match (previous matches may not be completed yet)",
                context={"match_id": match_id}
            )
        return match, fighter_a, fighter_b

    async def record_result(self, db: AsyncSession, match_id: int, winner_fighter_id: int) -> ResultResponse:
        try:
            match = await self._get_match_for_update(db, match_id)
            if match.winner_fighter_id is not None:
                raise ConflictError(
                    "Match already has a winner",
                    context={"match_id": match_id, "winner_fighter_id": match.winner_fighter_id}
                )

            await self._lock_feeding_matches(db, match)
            arena = await load_arena(db, match.tournament_id)
            fighter_a, fighter_b = arena.resolve(match)
            if fighter_a is None or fighter_b is None:
                raise UnresolvableError(
                    "Cannot resolve fighters for this match (previous matches may not be completed yet)",
                    context={"match_id": match_id}
                )

            if winner_fighter_id not in (fighter_a.id, fighter_b.id):
                raise InvalidChoiceError(
                    "winner_fighter_id does not match either participant in this match",
                    context={
                        "match_id": match_id,
                        "winner_fighter_id": winner_fighter_id,
                        "fighter_ids": [fighter_a.id, fighter_b.id],
                    }
                )
            winner, loser = (fighter_a, fighter_b) if winner_fighter_id == fighter_a.id else (fighter_b, fighter_a)
            now = datetime.now(timezone.utc)

            # 1) Winner, only if nobody set one since we read the row
            stamped = await db.execute(
                update(Match)
                .where(Match.id == match.id, Match.winner_fighter_id.is_(None))
                .values(winner_fighter_id=winner.id, completed_at=now)
                .execution_options(synchronize_session=False)
            )
            if stamped.rowcount != 1:
                raise ConflictError("Match already has a winner", context={"match_id": match_id})

            # 2) Fight log row with full winner/loser identities
            fight = Fight(
                match_id=match.id,
                tournament_id=match.tournament_id,
                winner_fighter_id=winner.id,
                loser_fighter_id=loser.id,
                winner_user_id=winner.user_id,
                loser_user_id=loser.user_id,
                winner_character_id=winner.character_id,
                loser_character_id=loser.character_id,
            )
            db.add(fight)
            await db.flush()

            # 3) Last open match closes the tournament
            remaining = await db.scalar(
                select(func.count(Match.id)).where(
                    Match.tournament_id == match.tournament_id,
                    Match.winner_fighter_id.is_(None)
                )
            )
            status = TournamentStatus.IN_PROGRESS
            if remaining == 0:
                closed = await db.execute(
                    update(Tournament)
                    .where(Tournament.id == match.tournament_id, Tournament.status == TournamentStatus.IN_PROGRESS)
                    .values(status=TournamentStatus.COMPLETED, completed_at=now)
                    .execution_options(synchronize_session=False)
                )
                if closed.rowcount != 1:
                    raise ConflictError(
                        "Tournament is not in progress",
                        context={"tournament_id": match.tournament_id}
                    )
                status = TournamentStatus.COMPLETED

            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning("Concurrent result for match %s rejected: %s", match_id, e.orig)
            raise ConflictError("Match already has a winner", context={"match_id": match_id}) from e
        except Exception:
            await db.rollback()
            raise

        logger.info("Match %s won by fighter %s (fight %s)", match_id, winner.id, fight.id)
        if status == TournamentStatus.COMPLETED:
            logger.info("Tournament %s completed", match.tournament_id)

        return ResultResponse(
            match_id=match_id,
            winner_fighter_id=winner.id,
            loser_fighter_id=loser.id,
            fight_id=fight.id,
            tournament_status=status,
        )

    async def undo_result(self, db: AsyncSession, match_id: int) -> UndoResponse:
        try:
            match = await self._get_match_for_update(db, match_id)
            fight = await db.scalar(
                select(Fight).where(Fight.match_id == match.id, Fight.undone_at.is_(None))
            )
            if fight is None:
                raise NotFoundError("No result recorded for this match", context={"match_id": match_id})

            tournament = await db.get(Tournament, match.tournament_id, populate_existing=True)
            if tournament.status == TournamentStatus.COMPLETED:
                raise ConflictError(
                    "Tournament is completed; results are final",
                    context={"match_id": match_id, "tournament_id": tournament.id}
                )

            arena = await load_arena(db, match.tournament_id)
            blocking = [m.id for m in arena.dependents_of(match.id) if m.winner_fighter_id is not None]
            if blocking:
                raise ConflictError(
                    "A later match already used this result; undo that match first",
                    context={"match_id": match_id, "blocking_match_ids": blocking}
                )

            now = datetime.now(timezone.utc)
            reverted = await db.execute(
                update(Fight)
                .where(Fight.id == fight.id, Fight.undone_at.is_(None))
                .values(undone_at=now)
                .execution_options(synchronize_session=False)
            )
            cleared = await db.execute(
                update(Match)
                .where(Match.id == match.id, Match.winner_fighter_id == fight.winner_fighter_id)
                .values(winner_fighter_id=None, completed_at=None)
                .execution_options(synchronize_session=False)
            )
            if reverted.rowcount != 1 or cleared.rowcount != 1:
                raise ConflictError("Match result changed concurrently", context={"match_id": match_id})

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Match %s result reverted (fight %s)", match_id, fight.id)
        return UndoResponse(match_id=match_id, undone_fight_id=fight.id)


# Singleton instance
match_service = MatchService()
