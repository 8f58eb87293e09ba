from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from fightnight.app.core.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    """Owner identity. Credentials live with the external auth service."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class GameTitle(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)

    characters = relationship("Character", back_populates="game", cascade="all, delete-orphan")


class Character(Base):
    __tablename__ = "characters"
    __table_args__ = (UniqueConstraint("game_id", "name", name="uq_characters_game_name"),)

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    is_selectable = Column(Boolean, default=True, nullable=False)

    game = relationship("GameTitle", back_populates="characters")
