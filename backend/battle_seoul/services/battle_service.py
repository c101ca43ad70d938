"""
Battle browsing service
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from battle_seoul.core.config import Settings, settings as default_settings
from battle_seoul.core.database import SessionLocal
from battle_seoul.core.utils import utcnow
from battle_seoul.models.contender import Category
from battle_seoul.schemas.battle_schemas import BattleRead
from battle_seoul.services.battle_store import BattleStore

logger = logging.getLogger(__name__)


class BattleService:
    """Battle reads: detail with view counting, listings, trending, search"""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        self.settings = settings or default_settings
        self.clock = clock or utcnow

    async def get_battle(self, battle_id: int) -> Optional[BattleRead]:
        with self.session_factory() as db:
            battles = BattleStore(db)
            battle = battles.get_battle(battle_id)
            if battle is None:
                return None
            return battles.to_read(battle, self.clock())

    async def get_battle_detail(self, battle_id: int, viewer_id: Optional[str] = None) -> Optional[BattleRead]:
        """Battle snapshot, counting the view.

        Anonymous views always count; a signed-in viewer counts once per
        battle. A failed view update never fails the read.
        """
        now = self.clock()
        with self.session_factory() as db:
            if BattleStore(db).get_battle(battle_id) is None:
                return None

        self._record_view(battle_id, viewer_id, now)
        return await self.get_battle(battle_id)

    async def list_battles(self, active_only: bool = False, skip: int = 0, limit: int = 10) -> List[BattleRead]:
        now = self.clock()
        with self.session_factory() as db:
            battles = BattleStore(db)
            rows = battles.list_battles(active_at=now if active_only else None, skip=skip, limit=limit)
            return [battles.to_read(row, now) for row in rows]

    async def get_trending_battles(self, limit: int = 8) -> List[BattleRead]:
        """Running battles, most voted then most viewed"""
        now = self.clock()
        with self.session_factory() as db:
            battles = BattleStore(db)
            return [battles.to_read(row, now) for row in battles.most_voted(limit, active_at=now)]

    async def get_popular_battles(self, limit: int = 10) -> List[BattleRead]:
        """All battles, ended ones included, most voted then most viewed"""
        now = self.clock()
        with self.session_factory() as db:
            battles = BattleStore(db)
            return [battles.to_read(row, now) for row in battles.most_voted(limit)]

    async def get_related_battles(self, battle_id: int, limit: int = 8) -> Optional[List[BattleRead]]:
        """Other battles of the same category; None if the battle is missing"""
        now = self.clock()
        with self.session_factory() as db:
            battles = BattleStore(db)
            battle = battles.get_battle(battle_id)
            if battle is None:
                return None
            rows = battles.most_voted(limit, category=battle.category, exclude_id=battle.id)
            return [battles.to_read(row, now) for row in rows]

    async def get_user_battles(self, user_id: str, limit: int = 20) -> List[BattleRead]:
        """Battles a user created by hand, newest first"""
        now = self.clock()
        with self.session_factory() as db:
            battles = BattleStore(db)
            return [battles.to_read(row, now) for row in battles.by_creator(user_id, limit)]

    async def search_battles(self, term: str, category: Optional[Category] = None, limit: int = 20) -> List[BattleRead]:
        now = self.clock()
        term = term.strip()
        if not term:
            return []
        with self.session_factory() as db:
            battles = BattleStore(db)
            return [battles.to_read(row, now) for row in battles.search(term, category=category, limit=limit)]

    def _record_view(self, battle_id: int, viewer_id: Optional[str], now: datetime) -> None:
        try:
            with self.session_factory.begin() as db:
                battles = BattleStore(db)
                if viewer_id:
                    if battles.get_view(battle_id, viewer_id) is not None:
                        return
                    battles.add_view(battle_id, viewer_id, now)
                battles.increment_views(battle_id, now)
        except IntegrityError:
            logger.debug("repeat view already counted", extra={"battle_id": battle_id, "viewer_id": viewer_id})
        except SQLAlchemyError:
            logger.warning("view count update failed", exc_info=True, extra={"battle_id": battle_id})
