import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from fightnight.app.core.errors import ConflictError, NotFoundError, ValidationError
from fightnight.app.engine.bracket import SlotSource, build_single_elimination
from fightnight.app.models.catalog_model import User, GameTitle, Character
from fightnight.app.models.enums import (
    BRACKET_SIZES, BracketSide, EliminationType, SourceKind, TournamentStatus
)
from fightnight.app.models.match_model import Match
from fightnight.app.models.tournament_model import Tournament, Fighter
from fightnight.app.schemas.tournament_schema import (
    TournamentDetail, TournamentResponse, FighterResponse, MatchResponse
)
from fightnight.app.services.match_service import load_arena, describe_match

logger = logging.getLogger(__name__)


class TournamentService:
    async def create_tournament(
        self,
        db: AsyncSession,
        game_id: int,
        owner_id: int,
        num_prelim_matches: int,
        elimination_type: str = EliminationType.SINGLE,
        name: Optional[str] = None
    ) -> Tournament:
        """
        Creates a PENDING tournament. The bracket is built later, by the join
        that fills the last seat.
        """
        # 1. Validate input before touching the store
        if num_prelim_matches not in BRACKET_SIZES:
            raise ValidationError(
                f"num_prelim_matches must be one of {list(BRACKET_SIZES)}",
                context={"num_prelim_matches": num_prelim_matches}
            )
        try:
            mode = EliminationType(elimination_type)
        except ValueError:
            raise ValidationError(
                "elimination_type must be 'single' or 'double'",
                context={"elimination_type": elimination_type}
            )
        if mode == EliminationType.DOUBLE:
            raise ValidationError(
                "Double elimination is not supported yet",
                context={"elimination_type": elimination_type}
            )
        if name is not None and not name.strip():
            raise ValidationError("name must not be blank")

        # 2. Referenced records must exist
        if await db.get(GameTitle, game_id) is None:
            raise NotFoundError("Game not found", context={"game_id": game_id})
        if await db.get(User, owner_id) is None:
            raise NotFoundError("Player not found", context={"user_id": owner_id})

        tournament = Tournament(
            game_id=game_id,
            owner_id=owner_id,
            name=name.strip() if name else f"Tournament {datetime.now(timezone.utc).isoformat()}",
            num_prelim_matches=num_prelim_matches,
            elimination_type=mode,
            status=TournamentStatus.PENDING,
            fighter_count=0
        )
        db.add(tournament)
        await db.commit()

        logger.info("Tournament %s created (%s seats)", tournament.id, tournament.capacity)
        return tournament

    async def get_tournament(self, db: AsyncSession, tournament_id: int) -> Tournament:
        result = await db.execute(
            select(Tournament).where(Tournament.id == tournament_id).execution_options(populate_existing=True)
        )
        t = result.scalar_one_or_none()
        if not t:
            raise NotFoundError("Tournament not found", context={"tournament_id": tournament_id})
        return t

    async def _get_tournament_for_update(self, db: AsyncSession, tournament_id: int) -> Tournament:
        result = await db.execute(
            select(Tournament).where(Tournament.id == tournament_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        t = result.scalar_one_or_none()
        if not t:
            raise NotFoundError("Tournament not found", context={"tournament_id": tournament_id})
        return t

    async def list_tournaments(self, db: AsyncSession, status: Optional[str] = None) -> List[Tournament]:
        query = select(Tournament)
        if status:
            if status not in set(TournamentStatus):
                raise ValidationError("Unknown tournament status", context={"status": status})
            query = query.where(Tournament.status == status)
        result = await db.execute(query.order_by(Tournament.created_at.desc(), Tournament.id.desc()))
        return result.scalars().all()

    async def join_tournament(
        self,
        db: AsyncSession,
        tournament_id: int,
        user_id: int,
        character_id: int
    ) -> Tuple[Fighter, Tournament]:
        """
        Seats a fighter at the next seed. The join that fills the last seat
        also builds the bracket and starts the tournament, in the same commit.
        """
        try:
            tournament = await self._get_tournament_for_update(db, tournament_id)
            if tournament.status != TournamentStatus.PENDING:
                raise ConflictError(
                    "Tournament already started",
                    context={"tournament_id": tournament_id, "status": tournament.status}
                )
            seed_index = tournament.fighter_count
            if seed_index >= tournament.capacity:
                raise ConflictError("Tournament is full", context={"tournament_id": tournament_id})

            if await db.get(User, user_id) is None:
                raise NotFoundError("Player not found", context={"user_id": user_id})
            character = await db.get(Character, character_id)
            if character is None:
                raise NotFoundError("Character not found", context={"character_id": character_id})
            if character.game_id != tournament.game_id:
                raise ValidationError(
                    "Character does not belong to this tournament's game",
                    context={"character_id": character_id, "game_id": tournament.game_id}
                )

            already_seated = await db.scalar(
                select(Fighter.id).where(Fighter.tournament_id == tournament_id, Fighter.user_id == user_id)
            )
            if already_seated is not None:
                raise ConflictError(
                    "Player already joined this tournament",
                    context={"tournament_id": tournament_id, "user_id": user_id}
                )

            # Claim the seat only if nobody else claimed it since we read the count
            claimed = await db.execute(
                update(Tournament)
                .where(
                    Tournament.id == tournament_id,
                    Tournament.status == TournamentStatus.PENDING,
                    Tournament.fighter_count == seed_index
                )
                .values(fighter_count=seed_index + 1)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                raise ConflictError("Seat was taken concurrently; retry", context={"tournament_id": tournament_id})

            fighter = Fighter(
                tournament_id=tournament_id,
                user_id=user_id,
                character_id=character_id,
                seed_index=seed_index
            )
            db.add(fighter)
            await db.flush()

            if seed_index + 1 == tournament.capacity:
                await self._build_bracket(db, tournament)
                started = await db.execute(
                    update(Tournament)
                    .where(Tournament.id == tournament_id, Tournament.status == TournamentStatus.PENDING)
                    .values(status=TournamentStatus.IN_PROGRESS, started_at=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )
                if started.rowcount != 1:
                    raise ConflictError("Tournament already started", context={"tournament_id": tournament_id})

            await db.commit()
            # Conditional updates bypass the identity map; reload the committed row
            await db.refresh(tournament)
        except IntegrityError as e:
            await db.rollback()
            logger.warning("Join on tournament %s lost a race: %s", tournament_id, e.orig)
            raise ConflictError("Seat was taken concurrently; retry", context={"tournament_id": tournament_id}) from e
        except Exception:
            await db.rollback()
            raise

        logger.info("Fighter %s joined tournament %s at seed %s", fighter.id, tournament_id, seed_index)
        if tournament.status == TournamentStatus.IN_PROGRESS:
            logger.info("Tournament %s bracket built, now in progress", tournament_id)
        return fighter, tournament

    async def _build_bracket(self, db: AsyncSession, tournament: Tournament) -> List[Match]:
        """Inserts the full match tree. Caller owns the transaction."""
        result = await db.execute(
            select(Fighter)
            .where(Fighter.tournament_id == tournament.id)
            .order_by(Fighter.seed_index.asc())
        )
        fighters = result.scalars().all()
        plan = build_single_elimination([f.id for f in fighters], tournament.num_prelim_matches)

        # Plan positions -> stored match ids; a node only references earlier nodes
        stored: List[Match] = []

        def to_stored(source: SlotSource) -> SlotSource:
            if source.kind == SourceKind.MATCH:
                return source.with_ref(stored[source.ref_id].id)
            return source

        for node in plan:
            a, b = to_stored(node.source_a), to_stored(node.source_b)
            match = Match(
                tournament_id=tournament.id,
                round_number=node.round_number,
                match_index=node.match_index,
                bracket_side=BracketSide.WINNERS,
                source_a_type=a.kind,
                source_a_id=a.ref_id,
                source_a_outcome=a.outcome,
                source_b_type=b.kind,
                source_b_id=b.ref_id,
                source_b_outcome=b.outcome,
            )
            db.add(match)
            await db.flush()
            stored.append(match)

        return stored

    async def get_tournament_detail(self, db: AsyncSession, tournament_id: int) -> TournamentDetail:
        tournament = await self.get_tournament(db, tournament_id)
        arena = await load_arena(db, tournament_id)
        fighters = sorted(arena.fighters.values(), key=lambda f: f.seed_index)
        return TournamentDetail(
            tournament=TournamentResponse.model_validate(tournament),
            fighters=[FighterResponse.model_validate(f) for f in fighters],
            # load_arena reads matches in (round_number, match_index) order
            matches=[describe_match(m, arena) for m in arena.matches.values()],
        )

    async def next_playable_match(self, db: AsyncSession, tournament_id: int) -> Optional[MatchResponse]:
        """
        First match without a winner in (round_number, match_index) order.
        Its fighters may still be undetermined; `ready` says whether both are known.
        """
        await self.get_tournament(db, tournament_id)
        result = await db.execute(
            select(Match)
            .where(Match.tournament_id == tournament_id, Match.winner_fighter_id.is_(None))
            .order_by(Match.round_number.asc(), Match.match_index.asc())
            .limit(1)
        )
        match = result.scalar_one_or_none()
        if match is None:
            return None
        arena = await load_arena(db, tournament_id)
        return describe_match(arena.matches[match.id], arena)


tournament_service = TournamentService()
