"""
Contender request/response schemas
"""

from pydantic import BaseModel, Field, field_serializer, model_validator
from typing import Optional
from datetime import datetime
from battle_seoul.core.utils import format_timestamp_with_timezone
from battle_seoul.models.contender import Category, Platform, ContenderStatus
from battle_seoul.schemas.media_schemas import MediaPayload

class ContenderUpload(BaseModel):
    """Upload request: either an image URL or a YouTube/TikTok/Instagram link"""
    creator_id: str = Field(..., min_length=1, description="Uploader's user id")
    creator_name: str = Field(default="anonymous", max_length=100)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    category: Category
    url: Optional[str] = Field(default=None, description="YouTube/TikTok/Instagram link")
    image_url: Optional[str] = Field(default=None, description="Uploaded image location")
    start_time: Optional[str] = Field(default=None, description="Trim start, e.g. 1:30")
    end_time: Optional[str] = Field(default=None, description="Trim end, e.g. 2:45")

    @model_validator(mode="after")
    def _require_media(self):
        if not self.url and not self.image_url:
            raise ValueError("either url or image_url is required")
        return self

class ContenderCreate(BaseModel):
    """Store input once media has been resolved"""
    creator_id: str
    creator_name: str = "anonymous"
    title: str
    description: str = ""
    category: Category
    media: MediaPayload
    like_count: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None

class ContenderRead(BaseModel):
    """Contender as seen by the matching engine and API callers"""
    id: int
    creator_id: str
    creator_name: str
    title: str
    description: str = ""
    category: Category
    platform: Platform
    media: MediaPayload
    image_url: Optional[str] = None
    status: ContenderStatus
    like_count: int = 0
    view_count: int = 0
    battle_count: int = 0
    last_battle_id: Optional[int] = None
    created_at: datetime

    @field_serializer('created_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)

    class Config:
        from_attributes = True
