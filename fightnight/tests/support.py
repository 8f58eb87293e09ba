"""
Shared fixtures: a fresh SQLite database per test (in memory, or a temp file
when sessions must interleave) plus helpers that build a game roster,
players and (optionally) a full tournament.

Helpers hand back plain ids. A failed call rolls the session back and
expires every loaded row, so tests re-read state through the services.
"""

import os
import tempfile
import unittest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from fightnight.app.core.database import build_engine, init_models
from fightnight.app.models.catalog_model import User, GameTitle, Character
from fightnight.app.services.match_service import match_service
from fightnight.app.services.tournament_service import tournament_service

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
ROSTER = ("Ryu", "Ken", "Chun-Li", "Guile")


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = build_engine(self.database_url())
        await init_models(self.engine)
        self.Session = sessionmaker(bind=self.engine, class_=AsyncSession, expire_on_commit=False)
        self.db = self.Session()
        self._player_seq = 0
        self.game_id = None
        self.character_ids = []

    def database_url(self):
        return TEST_DATABASE_URL

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()

    async def seed_game(self, name="Street Fighter 6", roster=ROSTER):
        """Returns (game_id, character_ids). The first game seeded is the default one."""
        game = GameTitle(name=name)
        self.db.add(game)
        await self.db.flush()
        characters = [Character(game_id=game.id, name=c) for c in roster]
        self.db.add_all(characters)
        await self.db.commit()
        ids = (game.id, [c.id for c in characters])
        if self.game_id is None:
            self.game_id, self.character_ids = ids
        return ids

    async def make_players(self, count):
        users = []
        for _ in range(count):
            self._player_seq += 1
            users.append(User(username=f"player{self._player_seq}"))
        self.db.add_all(users)
        await self.db.commit()
        return [u.id for u in users]

    async def make_tournament(self, num_prelim_matches=4, fill=True):
        """
        Creates a tournament owned by a fresh player. With `fill`, seats
        2P fresh players (character i % roster) so the bracket is built.
        Returns (tournament_id, fighter ids in seed order).
        """
        if self.game_id is None:
            await self.seed_game()
        owner_id, = await self.make_players(1)
        tournament = await tournament_service.create_tournament(
            self.db, self.game_id, owner_id, num_prelim_matches
        )
        tournament_id = tournament.id
        fighter_ids = []
        if fill:
            for i, user_id in enumerate(await self.make_players(2 * num_prelim_matches)):
                character_id = self.character_ids[i % len(self.character_ids)]
                fighter, _ = await tournament_service.join_tournament(
                    self.db, tournament_id, user_id, character_id
                )
                fighter_ids.append(fighter.id)
        return tournament_id, fighter_ids

    async def bracket(self, tournament_id):
        """Match views keyed by (round_number, match_index)."""
        detail = await tournament_service.get_tournament_detail(self.db, tournament_id)
        return {(m.round_number, m.match_index): m for m in detail.matches}

    async def play(self, tournament_id, round_number, match_index, pick="a"):
        view = (await self.bracket(tournament_id))[(round_number, match_index)]
        winner = view.fighter_a_id if pick == "a" else view.fighter_b_id
        return await match_service.record_result(self.db, view.id, winner)


class FileDatabaseTestCase(DatabaseTestCase):
    """
    Same fixtures on a throwaway database file. Unlike the in-memory store,
    each session gets its own connection, so two sessions can interleave.
    """

    def database_url(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        return f"sqlite+aiosqlite:///{os.path.join(tmp.name, 'fightnight.db')}"
