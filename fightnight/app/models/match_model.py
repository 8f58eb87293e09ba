from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship
from fightnight.app.core.database import Base
from fightnight.app.engine.bracket import SlotSource
from fightnight.app.models.catalog_model import utcnow
from fightnight.app.models.enums import BracketSide, SourceKind, SlotOutcome

class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint(
            "tournament_id", "bracket_side", "round_number", "match_index",
            name="uq_matches_position"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    round_number = Column(Integer, nullable=False)  # 1-based
    match_index = Column(Integer, nullable=False)  # 0-based position within the round
    bracket_side = Column(String, default=BracketSide.WINNERS, nullable=False)

    # Slot sources: (fighter | match, referenced id, winner | loser). Fixed at creation.
    source_a_type = Column(String, nullable=False)
    source_a_id = Column(Integer, nullable=False)
    source_a_outcome = Column(String, default=SlotOutcome.WINNER, nullable=False)
    source_b_type = Column(String, nullable=False)
    source_b_id = Column(Integer, nullable=False)
    source_b_outcome = Column(String, default=SlotOutcome.WINNER, nullable=False)

    winner_fighter_id = Column(Integer, ForeignKey("tournament_fighters.id"), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    tournament = relationship("Tournament", back_populates="matches")

    @property
    def source_a(self) -> SlotSource:
        return SlotSource(SourceKind(self.source_a_type), self.source_a_id, SlotOutcome(self.source_a_outcome))

    @property
    def source_b(self) -> SlotSource:
        return SlotSource(SourceKind(self.source_b_type), self.source_b_id, SlotOutcome(self.source_b_outcome))


class Fight(Base):
    """
    Outcome log. One row per recorded result, never rewritten except for
    `undone_at`, which marks a reverted result. Resolution and statistics
    only read live rows (undone_at IS NULL); at most one live row per match.
    """
    __tablename__ = "fights"
    __table_args__ = (
        Index(
            "uq_fights_live_match", "match_id", unique=True,
            sqlite_where=text("undone_at IS NULL"),
            postgresql_where=text("undone_at IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    undone_at = Column(DateTime(timezone=True), nullable=True)

    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)

    winner_fighter_id = Column(Integer, ForeignKey("tournament_fighters.id"), nullable=False, index=True)
    loser_fighter_id = Column(Integer, ForeignKey("tournament_fighters.id"), nullable=False, index=True)
    winner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    loser_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    winner_character_id = Column(Integer, ForeignKey("characters.id"), nullable=False, index=True)
    loser_character_id = Column(Integer, ForeignKey("characters.id"), nullable=False, index=True)
