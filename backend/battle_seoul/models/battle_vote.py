"""
Vote data model
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from battle_seoul.core.database import Base
from battle_seoul.core.utils import utcnow

class BattleVote(Base):
    """One user's vote on one battle; the battle's participant list"""
    __tablename__ = "battle_votes"
    __table_args__ = (
        UniqueConstraint("battle_id", "voter_id", name="uq_battle_votes_battle_voter"),
    )

    id = Column(Integer, primary_key=True, index=True)
    battle_id = Column(Integer, ForeignKey("battles.id"), nullable=False, index=True)
    voter_id = Column(String(128), nullable=False)     # voter
    side = Column(String(10), nullable=False)          # itemA, itemB
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    battle = relationship("Battle", back_populates="votes")
