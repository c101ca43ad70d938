"""
Contender store accessor
"""

from typing import Callable, List, Optional, Sequence, TypeVar
from sqlalchemy.orm import Session
from battle_seoul.core.utils import utcnow
from battle_seoul.models.contender import Category, Contender, ContenderStatus, Platform
from battle_seoul.schemas.contender_schemas import ContenderCreate, ContenderRead
from battle_seoul.schemas.media_schemas import preview_image_url

T = TypeVar("T")

class ContenderStore:
    """Reads and writes contenders inside the caller's session/transaction.

    The store only flushes; committing is up to whoever opened the
    transaction, so a contender update and a battle insert can share one.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_contender(self, data: ContenderCreate) -> ContenderRead:
        """Persist an uploaded contender as available"""
        media = data.media
        contender = Contender(
            creator_id=data.creator_id,
            creator_name=data.creator_name,
            title=data.title,
            description=data.description,
            category=data.category,
            platform=Platform(media.platform),
            media=media.model_dump(mode="json"),
            image_url=preview_image_url(media),
            status=ContenderStatus.AVAILABLE,
            like_count=data.like_count,
            view_count=data.view_count,
            created_at=data.created_at or utcnow(),
        )
        self.db.add(contender)
        self.db.flush()
        return ContenderRead.model_validate(contender)

    def get_contender(self, contender_id: int) -> Optional[ContenderRead]:
        contender = self.db.get(Contender, contender_id)
        if contender is None:
            return None
        return ContenderRead.model_validate(contender)

    def get_available_contenders(
        self,
        category: Optional[Category] = None,
        limit: Optional[int] = None,
    ) -> List[ContenderRead]:
        """Available contenders, newest first"""
        query = self.db.query(Contender).filter(Contender.status == ContenderStatus.AVAILABLE)
        if category is not None:
            query = query.filter(Contender.category == category)
        query = query.order_by(Contender.created_at.desc(), Contender.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return [ContenderRead.model_validate(row) for row in query.all()]

    def list_contenders(
        self,
        creator_id: Optional[str] = None,
        category: Optional[Category] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[ContenderRead]:
        query = self.db.query(Contender)
        if creator_id is not None:
            query = query.filter(Contender.creator_id == creator_id)
        if category is not None:
            query = query.filter(Contender.category == category)
        rows = query.order_by(Contender.created_at.desc(), Contender.id.desc()).offset(skip).limit(limit).all()
        return [ContenderRead.model_validate(row) for row in rows]

    def transactional_update(
        self,
        contender_ids: Sequence[int],
        update_fn: Callable[[List[Optional[Contender]]], T],
    ) -> T:
        """Re-read the rows and hand them to update_fn, in the order of contender_ids.

        Missing ids come through as None. update_fn mutates the rows or raises
        to abort; the flush then checks each row's version, so a concurrent
        writer surfaces as StaleDataError.
        """
        rows = (
            self.db.query(Contender)
            .filter(Contender.id.in_(list(contender_ids)))
            .populate_existing()
            .with_for_update()
            .all()
        )
        by_id = {row.id: row for row in rows}
        result = update_fn([by_id.get(contender_id) for contender_id in contender_ids])
        self.db.flush()
        return result
