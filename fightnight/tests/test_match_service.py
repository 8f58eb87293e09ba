import unittest
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select

from fightnight.app.core.errors import ConflictError, InvalidChoiceError, NotFoundError, UnresolvableError
from fightnight.app.models.enums import TournamentStatus
from fightnight.app.models.match_model import Fight
from fightnight.app.services.match_service import match_service
from fightnight.app.services.tournament_service import tournament_service
from fightnight.tests.support import DatabaseTestCase

ROUND_ONE = [(1, 0), (1, 1), (1, 2), (1, 3)]


class TestRecordResult(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.tournament_id, self.seeds = await self.make_tournament(4)

    async def fight_count(self, live_only=True):
        query = select(func.count(Fight.id)).where(Fight.tournament_id == self.tournament_id)
        if live_only:
            query = query.where(Fight.undone_at.is_(None))
        return await self.db.scalar(query)

    async def test_full_bracket_scenario(self):
        """
        Seeds 0..7. Round one: 0, 3, 4, 7 win. Semis: 0 beats 3, 7 beats 4.
        Final: 7 beats 0. Completion only lands with the seventh result.
        """
        s = self.seeds
        picks = {(1, 0): "a", (1, 1): "b", (1, 2): "a", (1, 3): "b", (2, 0): "a", (2, 1): "b", (3, 0): "b"}

        for key in ROUND_ONE:
            result = await self.play(self.tournament_id, *key, pick=picks[key])
            self.assertEqual(result.tournament_status, TournamentStatus.IN_PROGRESS)

        bracket = await self.bracket(self.tournament_id)
        self.assertEqual((bracket[(2, 0)].fighter_a_id, bracket[(2, 0)].fighter_b_id), (s[0], s[3]))
        self.assertEqual((bracket[(2, 1)].fighter_a_id, bracket[(2, 1)].fighter_b_id), (s[4], s[7]))

        await self.play(self.tournament_id, 2, 0, pick="a")
        semi = await self.play(self.tournament_id, 2, 1, pick="b")
        self.assertEqual(semi.loser_fighter_id, s[4])
        tournament = await tournament_service.get_tournament(self.db, self.tournament_id)
        self.assertEqual(tournament.status, TournamentStatus.IN_PROGRESS)

        final = await self.play(self.tournament_id, 3, 0, pick="b")
        self.assertEqual(final.winner_fighter_id, s[7])
        self.assertEqual(final.loser_fighter_id, s[0])
        self.assertEqual(final.tournament_status, TournamentStatus.COMPLETED)

        tournament = await tournament_service.get_tournament(self.db, self.tournament_id)
        self.assertEqual(tournament.status, TournamentStatus.COMPLETED)
        self.assertIsNotNone(tournament.completed_at)
        self.assertEqual(await self.fight_count(), 7)

    async def test_first_result_fills_one_semi_slot(self):
        await self.play(self.tournament_id, 1, 0, pick="a")
        semi = (await self.bracket(self.tournament_id))[(2, 0)]
        self.assertEqual(semi.fighter_a_id, self.seeds[0])
        self.assertIsNone(semi.fighter_b_id)
        self.assertFalse(semi.ready)

    async def test_fight_row_carries_full_identities(self):
        result = await self.play(self.tournament_id, 1, 0, pick="b")
        fight = await self.db.get(Fight, result.fight_id)
        detail = await tournament_service.get_tournament_detail(self.db, self.tournament_id)
        winner, loser = detail.fighters[1], detail.fighters[0]

        self.assertEqual(fight.winner_fighter_id, winner.id)
        self.assertEqual(fight.loser_fighter_id, loser.id)
        self.assertEqual(fight.winner_user_id, winner.user_id)
        self.assertEqual(fight.loser_user_id, loser.user_id)
        self.assertEqual(fight.winner_character_id, winner.character_id)
        self.assertEqual(fight.loser_character_id, loser.character_id)
        self.assertIsNone(fight.undone_at)

    async def test_fight_log_rejects_unknown_identities(self):
        match_id = (await self.bracket(self.tournament_id))[(1, 0)].id
        detail = await tournament_service.get_tournament_detail(self.db, self.tournament_id)
        winner, loser = detail.fighters[0], detail.fighters[1]
        valid = dict(
            match_id=match_id,
            tournament_id=self.tournament_id,
            winner_fighter_id=winner.id,
            loser_fighter_id=loser.id,
            winner_user_id=winner.user_id,
            loser_user_id=loser.user_id,
            winner_character_id=winner.character_id,
            loser_character_id=loser.character_id,
        )
        for column in ("winner_fighter_id", "loser_user_id", "winner_character_id"):
            with self.subTest(column=column):
                self.db.add(Fight(**{**valid, column: 9999}))
                with self.assertRaises(IntegrityError):
                    await self.db.flush()
                await self.db.rollback()
        self.assertEqual(await self.fight_count(), 0)

    async def test_second_result_conflicts(self):
        first = await self.play(self.tournament_id, 1, 0, pick="a")
        with self.assertRaises(ConflictError):
            await match_service.record_result(self.db, first.match_id, first.loser_fighter_id)

        view = await match_service.get_match_view(self.db, first.match_id)
        self.assertEqual(view.winner_fighter_id, first.winner_fighter_id)
        self.assertEqual(await self.fight_count(), 1)

    async def test_unresolvable_until_feeders_finish(self):
        bracket = await self.bracket(self.tournament_id)
        semi = bracket[(2, 0)]
        self.assertFalse(semi.ready)
        with self.assertRaises(UnresolvableError):
            await match_service.record_result(self.db, semi.id, self.seeds[0])
        with self.assertRaises(UnresolvableError):
            await match_service.resolve_fighters(self.db, semi.id)

        await self.play(self.tournament_id, 1, 0)
        with self.assertRaises(UnresolvableError):
            await match_service.record_result(self.db, semi.id, self.seeds[0])
        self.assertEqual(await self.fight_count(), 1)

    async def test_winner_must_be_a_participant(self):
        bracket = await self.bracket(self.tournament_id)
        with self.assertRaises(InvalidChoiceError):
            await match_service.record_result(self.db, bracket[(1, 0)].id, self.seeds[5])

        view = await match_service.get_match_view(self.db, bracket[(1, 0)].id)
        self.assertIsNone(view.winner_fighter_id)
        self.assertEqual(await self.fight_count(), 0)

    async def test_unknown_match(self):
        with self.assertRaises(NotFoundError):
            await match_service.record_result(self.db, 9999, self.seeds[0])
        with self.assertRaises(NotFoundError):
            await match_service.get_match_view(self.db, 9999)


class TestUndoResult(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.tournament_id, self.seeds = await self.make_tournament(4)

    async def test_undo_reopens_the_match(self):
        result = await self.play(self.tournament_id, 1, 0)
        undone = await match_service.undo_result(self.db, result.match_id)
        self.assertEqual(undone.undone_fight_id, result.fight_id)

        view = await match_service.get_match_view(self.db, result.match_id)
        self.assertIsNone(view.winner_fighter_id)
        self.assertIsNone(view.completed_at)
        fight = await self.db.get(Fight, result.fight_id, populate_existing=True)
        self.assertIsNotNone(fight.undone_at)

        # Replayable, with the other fighter this time
        again = await match_service.record_result(self.db, result.match_id, result.loser_fighter_id)
        self.assertEqual(again.winner_fighter_id, self.seeds[1])
        self.assertNotEqual(again.fight_id, result.fight_id)

    async def test_undo_empties_downstream_slot(self):
        await self.play(self.tournament_id, 1, 0)
        await self.play(self.tournament_id, 1, 1)
        bracket = await self.bracket(self.tournament_id)
        self.assertTrue(bracket[(2, 0)].ready)

        await match_service.undo_result(self.db, bracket[(1, 1)].id)
        semi = (await self.bracket(self.tournament_id))[(2, 0)]
        self.assertEqual(semi.fighter_a_id, self.seeds[0])
        self.assertIsNone(semi.fighter_b_id)
        self.assertFalse(semi.ready)

    async def test_undo_blocked_by_later_result(self):
        for key in ROUND_ONE[:2]:
            await self.play(self.tournament_id, *key)
        semi = await self.play(self.tournament_id, 2, 0)
        bracket = await self.bracket(self.tournament_id)

        with self.assertRaises(ConflictError) as ctx:
            await match_service.undo_result(self.db, bracket[(1, 0)].id)
        self.assertEqual(ctx.exception.context["blocking_match_ids"], [semi.match_id])

        # Undo the later match first, then the earlier one is free
        await match_service.undo_result(self.db, semi.match_id)
        await match_service.undo_result(self.db, bracket[(1, 0)].id)

    async def test_undo_without_result(self):
        bracket = await self.bracket(self.tournament_id)
        with self.assertRaises(NotFoundError):
            await match_service.undo_result(self.db, bracket[(1, 0)].id)

        result = await self.play(self.tournament_id, 1, 0)
        await match_service.undo_result(self.db, result.match_id)
        with self.assertRaises(NotFoundError):
            await match_service.undo_result(self.db, result.match_id)

    async def test_completed_tournament_is_final(self):
        for key in ROUND_ONE + [(2, 0), (2, 1), (3, 0)]:
            final = await self.play(self.tournament_id, *key)
        with self.assertRaises(ConflictError):
            await match_service.undo_result(self.db, final.match_id)

        tournament = await tournament_service.get_tournament(self.db, self.tournament_id)
        self.assertEqual(tournament.status, TournamentStatus.COMPLETED)


if __name__ == "__main__":
    unittest.main()
