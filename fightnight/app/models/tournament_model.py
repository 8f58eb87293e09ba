from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from fightnight.app.core.database import Base
from fightnight.app.models.catalog_model import utcnow
from fightnight.app.models.enums import TournamentStatus, EliminationType

class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String, nullable=False)

    num_prelim_matches = Column(Integer, nullable=False)  # P: the bracket holds 2P fighters
    elimination_type = Column(String, default=EliminationType.SINGLE, nullable=False)
    status = Column(String, default=TournamentStatus.PENDING, nullable=False, index=True)  # pending, in_progress, completed

    # Seats claimed so far. Joins update it conditionally on its previous value.
    fighter_count = Column(Integer, default=0, nullable=False)

    fighters = relationship(
        "Fighter", back_populates="tournament", cascade="all, delete-orphan",
        order_by="Fighter.seed_index"
    )
    matches = relationship("Match", back_populates="tournament", cascade="all, delete-orphan")

    @property
    def capacity(self) -> int:
        return self.num_prelim_matches * 2


class Fighter(Base):
    """A seeded participant: one user playing one character in one tournament."""
    __tablename__ = "tournament_fighters"
    __table_args__ = (
        UniqueConstraint("tournament_id", "seed_index", name="uq_fighters_tournament_seed"),
        UniqueConstraint("tournament_id", "user_id", name="uq_fighters_tournament_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    character_id = Column(Integer, ForeignKey("characters.id"), nullable=False)
    seed_index = Column(Integer, nullable=False)

    tournament = relationship("Tournament", back_populates="fighters")
    user = relationship("User")
    character = relationship("Character")
