import unittest
from collections import Counter

from fightnight.app.engine.bracket import SlotSource, build_single_elimination, round_count
from fightnight.app.models.enums import SourceKind, SlotOutcome


class TestSingleEliminationBuilder(unittest.TestCase):
    def seeded_ids(self, num_prelim_matches):
        # Arbitrary stored ids; seed order is list order
        return [100 + 7 * i for i in range(2 * num_prelim_matches)]

    def test_match_and_round_counts(self):
        """2P - 1 matches over log2(P) + 1 rounds, halving each round."""
        for p in (4, 8, 16):
            with self.subTest(p=p):
                plan = build_single_elimination(self.seeded_ids(p), p)
                self.assertEqual(len(plan), 2 * p - 1)

                sizes = Counter(node.round_number for node in plan)
                self.assertEqual(len(sizes), round_count(p))
                expected, size = [], p
                while size >= 1:
                    expected.append(size)
                    size //= 2
                self.assertEqual([sizes[r] for r in sorted(sizes)], expected)

    def test_round_one_pairs_adjacent_seeds(self):
        ids = self.seeded_ids(8)
        plan = build_single_elimination(ids, 8)
        prelims = [n for n in plan if n.round_number == 1]

        for k, node in enumerate(prelims):
            self.assertEqual(node.match_index, k)
            self.assertEqual(node.source_a, SlotSource(SourceKind.FIGHTER, ids[2 * k]))
            self.assertEqual(node.source_b, SlotSource(SourceKind.FIGHTER, ids[2 * k + 1]))

    def test_later_rounds_take_winners_of_consecutive_matches(self):
        plan = build_single_elimination(self.seeded_ids(4), 4)
        position = {(n.round_number, n.match_index): i for i, n in enumerate(plan)}

        for node in plan:
            if node.round_number == 1:
                continue
            k = node.match_index
            for source, feeder in ((node.source_a, 2 * k), (node.source_b, 2 * k + 1)):
                self.assertEqual(source.kind, SourceKind.MATCH)
                self.assertEqual(source.outcome, SlotOutcome.WINNER)
                # Plan-local reference to an earlier node
                self.assertEqual(source.ref_id, position[(node.round_number - 1, feeder)])
                self.assertLess(source.ref_id, position[(node.round_number, k)])

    def test_plan_is_in_bracket_order_and_ends_with_the_final(self):
        plan = build_single_elimination(self.seeded_ids(16), 16)
        keys = [(n.round_number, n.match_index) for n in plan]
        self.assertEqual(keys, sorted(keys))
        self.assertEqual(keys[-1], (5, 0))

    def test_same_roster_same_bracket(self):
        ids = self.seeded_ids(4)
        self.assertEqual(build_single_elimination(ids, 4), build_single_elimination(ids, 4))

    def test_rejects_wrong_roster_size(self):
        with self.assertRaises(ValueError):
            build_single_elimination(self.seeded_ids(4)[:-1], 4)

    def test_rejects_unsupported_bracket_size(self):
        with self.assertRaises(ValueError):
            build_single_elimination(list(range(12)), 6)


if __name__ == "__main__":
    unittest.main()
