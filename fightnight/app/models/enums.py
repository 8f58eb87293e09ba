from enum import StrEnum

class TournamentStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class EliminationType(StrEnum):
    SINGLE = "single"
    DOUBLE = "double"  # Reserved: no losers bracket is ever built

class BracketSide(StrEnum):
    WINNERS = "winners"
    LOSERS = "losers"

class SourceKind(StrEnum):
    FIGHTER = "fighter"
    MATCH = "match"

class SlotOutcome(StrEnum):
    WINNER = "winner"
    LOSER = "loser"

# Prelim-match counts a bracket can be built for
BRACKET_SIZES = (4, 8, 16)
