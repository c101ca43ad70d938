"""
Battle viewer data model
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from battle_seoul.core.database import Base
from battle_seoul.core.utils import utcnow

class BattleView(Base):
    """First view of a battle by a signed-in user; anonymous views leave no row"""
    __tablename__ = "battle_views"
    __table_args__ = (
        UniqueConstraint("battle_id", "viewer_id", name="uq_battle_views_battle_viewer"),
    )

    id = Column(Integer, primary_key=True, index=True)
    battle_id = Column(Integer, ForeignKey("battles.id"), nullable=False, index=True)
    viewer_id = Column(String(128), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    battle = relationship("Battle", back_populates="viewers")
