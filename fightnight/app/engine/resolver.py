"""
Match Resolver

Works out who actually plays in a match by following its slot sources.
Nothing is copied forward when a result is recorded; a slot that points at
an earlier match is looked up again every time it is read.

The arena holds one tournament's fighters, matches and live fights keyed by
id. Any objects exposing the model attributes work, so the resolver can be
exercised without a database.
"""

from typing import Dict, Iterable, Optional, Tuple, Any

from fightnight.app.engine.bracket import SlotSource
from fightnight.app.models.enums import SourceKind, SlotOutcome


class BracketArena:
    def __init__(self, fighters: Iterable[Any], matches: Iterable[Any], live_fights: Iterable[Any] = ()):
        self.fighters: Dict[int, Any] = {f.id: f for f in fighters}
        self.matches: Dict[int, Any] = {m.id: m for m in matches}
        self.fights_by_match: Dict[int, Any] = {f.match_id: f for f in live_fights}

    def resolve_slot(self, source: SlotSource) -> Optional[Any]:
        """Returns the fighter behind a slot, or None while it is undetermined."""
        if source.kind == SourceKind.FIGHTER:
            return self.fighters.get(source.ref_id)

        parent = self.matches.get(source.ref_id)
        if parent is None:
            return None

        if source.outcome == SlotOutcome.WINNER:
            if parent.winner_fighter_id is None:
                return None
            return self.fighters.get(parent.winner_fighter_id)

        # Loser slots go through the fight log, the only place losers are kept
        fight = self.fights_by_match.get(parent.id)
        if fight is None:
            return None
        return self.fighters.get(fight.loser_fighter_id)

    def resolve(self, match) -> Tuple[Optional[Any], Optional[Any]]:
        return self.resolve_slot(match.source_a), self.resolve_slot(match.source_b)

    def dependents_of(self, match_id: int):
        """Matches with a slot fed by `match_id`, in bracket order."""
        return sorted(
            (m for m in self.matches.values() if _feeds_from(m, match_id)),
            key=match_order_key,
        )


def match_order_key(match) -> Tuple[int, int]:
    """Total order over a bracket: earlier rounds first, then position."""
    return match.round_number, match.match_index


def _feeds_from(match, match_id: int) -> bool:
    return any(
        s.kind == SourceKind.MATCH and s.ref_id == match_id
        for s in (match.source_a, match.source_b)
    )
