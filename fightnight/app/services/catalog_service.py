import logging
from typing import Dict, List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from fightnight.app.core.errors import ConflictError, NotFoundError, ValidationError
from fightnight.app.models.catalog_model import User, GameTitle, Character

logger = logging.getLogger(__name__)


class CatalogService:
    """Players, games and characters: the identities tournaments point at."""

    async def create_player(self, db: AsyncSession, username: str) -> User:
        username = (username or "").strip()
        if not username:
            raise ValidationError("username is required")
        user = User(username=username)
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError("Username already taken", context={"username": username}) from e
        return user

    async def get_player(self, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError("Player not found", context={"user_id": user_id})
        return user

    async def list_games(self, db: AsyncSession) -> List[GameTitle]:
        result = await db.execute(select(GameTitle).order_by(GameTitle.name.asc()))
        return result.scalars().all()

    async def list_characters(self, db: AsyncSession, game_id: int) -> List[Character]:
        if await db.get(GameTitle, game_id) is None:
            raise NotFoundError("Game not found", context={"game_id": game_id})
        result = await db.execute(
            select(Character)
            .where(Character.game_id == game_id, Character.is_selectable.is_(True))
            .order_by(Character.name.asc())
        )
        return result.scalars().all()

    async def seed_catalog(self, db: AsyncSession, catalog: Dict[str, List[str]]) -> int:
        """Adds missing games and characters from a {game: [character, ...]} mapping. Returns rows added."""
        added = 0
        for game_name, character_names in catalog.items():
            game = await db.scalar(select(GameTitle).where(GameTitle.name == game_name))
            if game is None:
                game = GameTitle(name=game_name)
                db.add(game)
                await db.flush()
                added += 1
            existing = set(
                (await db.execute(select(Character.name).where(Character.game_id == game.id))).scalars().all()
            )
            for name in character_names or []:
                if name not in existing:
                    db.add(Character(game_id=game.id, name=name))
                    added += 1
        await db.commit()
        logger.info("Catalog seeded: %s new rows", added)
        return added


catalog_service = CatalogService()
