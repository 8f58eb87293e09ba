"""
Bracket Builder - single elimination

Turns a seeded roster into the fixed tree of matches. Pure: no database
access, no randomness. The same seed order always yields the same bracket.

Match-kind slot sources in a plan point at earlier nodes by their position
in the plan list. The persistence layer inserts the nodes in order and swaps
those positions for stored match ids.
"""

import math
from dataclasses import dataclass, replace
from typing import List, Sequence

from fightnight.app.models.enums import BRACKET_SIZES, SourceKind, SlotOutcome


@dataclass(frozen=True)
class SlotSource:
    """Where one side of a match gets its fighter from."""
    kind: SourceKind
    ref_id: int
    outcome: SlotOutcome = SlotOutcome.WINNER

    def with_ref(self, ref_id: int) -> "SlotSource":
        return replace(self, ref_id=ref_id)


@dataclass(frozen=True)
class MatchNode:
    round_number: int
    match_index: int
    source_a: SlotSource
    source_b: SlotSource


def round_count(num_prelim_matches: int) -> int:
    """log2(2P): number of rounds for a bracket of P prelim matches."""
    return int(math.log2(num_prelim_matches)) + 1


def build_single_elimination(seeded_fighter_ids: Sequence[int], num_prelim_matches: int) -> List[MatchNode]:
    """
    Builds the 2P - 1 match plan, ordered by (round_number, match_index).

    Round 1 match k pairs seeds 2k and 2k+1. Every later match k takes the
    winners of matches 2k and 2k+1 of the previous round.
    """
    if num_prelim_matches not in BRACKET_SIZES:
        raise ValueError(f"num_prelim_matches must be one of {BRACKET_SIZES}, got {num_prelim_matches}")
    if len(seeded_fighter_ids) != 2 * num_prelim_matches:
        raise ValueError(
            f"Bracket needs exactly {2 * num_prelim_matches} fighters, got {len(seeded_fighter_ids)}"
        )

    plan: List[MatchNode] = []

    # 1. Prelims, straight from seed order
    previous_round = []
    for k in range(num_prelim_matches):
        plan.append(MatchNode(
            round_number=1,
            match_index=k,
            source_a=SlotSource(SourceKind.FIGHTER, seeded_fighter_ids[2 * k]),
            source_b=SlotSource(SourceKind.FIGHTER, seeded_fighter_ids[2 * k + 1]),
        ))
        previous_round.append(len(plan) - 1)

    # 2. Pair off winners until only the final is left
    round_number = 2
    while len(previous_round) > 1:
        current_round = []
        for k in range(len(previous_round) // 2):
            plan.append(MatchNode(
                round_number=round_number,
                match_index=k,
                source_a=SlotSource(SourceKind.MATCH, previous_round[2 * k]),
                source_b=SlotSource(SourceKind.MATCH, previous_round[2 * k + 1]),
            ))
            current_round.append(len(plan) - 1)
        previous_round = current_round
        round_number += 1

    return plan
