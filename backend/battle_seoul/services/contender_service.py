"""
Contender upload and lookup service
"""

import logging
from typing import List, Optional
from sqlalchemy.orm import sessionmaker
from battle_seoul.core.database import SessionLocal
from battle_seoul.models.contender import Category
from battle_seoul.schemas.contender_schemas import ContenderCreate, ContenderRead, ContenderUpload
from battle_seoul.services.contender_store import ContenderStore
from battle_seoul.services.media_service import MediaService

logger = logging.getLogger(__name__)

class ContenderService:
    """Uploads enter the pool as available contenders"""

    def __init__(self, session_factory: Optional[sessionmaker] = None, media_service: Optional[MediaService] = None):
        self.session_factory = session_factory or SessionLocal
        self.media_service = media_service or MediaService()

    async def upload_contender(self, upload: ContenderUpload) -> ContenderRead:
        """Resolve the media link and store the contender"""
        media = await self.media_service.build_media(upload)
        with self.session_factory.begin() as db:
            contender = ContenderStore(db).create_contender(ContenderCreate(
                creator_id=upload.creator_id,
                creator_name=upload.creator_name,
                title=upload.title,
                description=upload.description,
                category=upload.category,
                media=media,
            ))
        logger.info(
            "contender uploaded",
            extra={"contender_id": contender.id, "category": contender.category.value, "platform": contender.platform.value},
        )
        return contender

    async def get_contender(self, contender_id: int) -> Optional[ContenderRead]:
        with self.session_factory() as db:
            return ContenderStore(db).get_contender(contender_id)

    async def list_contenders(
        self,
        available_only: bool = False,
        category: Optional[Category] = None,
        creator_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[ContenderRead]:
        with self.session_factory() as db:
            store = ContenderStore(db)
            if available_only:
                contenders = store.get_available_contenders(category=category)
                if creator_id is not None:
                    contenders = [c for c in contenders if c.creator_id == creator_id]
                return contenders[skip:skip + limit]
            contenders = store.list_contenders(creator_id=creator_id, category=category, skip=skip, limit=limit)
            return contenders
