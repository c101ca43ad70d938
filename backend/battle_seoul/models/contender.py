"""
Contender data model
"""

import enum
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Enum
from battle_seoul.core.database import Base
from battle_seoul.core.utils import utcnow


def enum_values(enum_cls):
    """Persist enum values ("music") rather than member names ("MUSIC")"""
    return [member.value for member in enum_cls]


class Category(str, enum.Enum):
    """Content category"""
    MUSIC = "music"
    FASHION = "fashion"
    FOOD = "food"


class Platform(str, enum.Enum):
    """Where the media lives"""
    IMAGE = "image"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"


class ContenderStatus(str, enum.Enum):
    """Contender lifecycle: available -> matched, never back"""
    AVAILABLE = "available"
    MATCHED = "matched"


class Contender(Base):
    """Uploaded content waiting for a battle"""
    __tablename__ = "contenders"

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(String(128), nullable=False, index=True)
    creator_name = Column(String(100), nullable=False, default="anonymous")
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(Enum(Category, values_callable=enum_values), nullable=False, index=True)
    platform = Column(Enum(Platform, values_callable=enum_values), nullable=False, default=Platform.IMAGE)
    media = Column(JSON, nullable=False)               # platform-tagged payload, see schemas.media_schemas
    image_url = Column(String(500), nullable=True)     # representative image or thumbnail
    status = Column(
        Enum(ContenderStatus, values_callable=enum_values),
        nullable=False,
        default=ContenderStatus.AVAILABLE,
        index=True,
    )
    like_count = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    battle_count = Column(Integer, nullable=False, default=0)
    last_battle_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
