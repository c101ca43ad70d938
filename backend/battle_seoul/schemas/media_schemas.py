"""
Platform-specific media payloads

A contender's media is a tagged union keyed by `platform`; each variant
carries only the fields its platform needs.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter

class TimeRange(BaseModel):
    """Trim window for video content, in seconds"""
    start_seconds: int = Field(default=0, ge=0)
    end_seconds: int = Field(default=0, ge=0, description="0 plays to the end")

class ImageMedia(BaseModel):
    platform: Literal["image"] = "image"
    image_url: str

class YouTubeMedia(BaseModel):
    platform: Literal["youtube"] = "youtube"
    url: str
    video_id: str
    thumbnail_url: Optional[str] = None
    embed_url: Optional[str] = None
    content_type: Literal["video", "shorts", "live"] = "video"
    time_range: Optional[TimeRange] = None

class TikTokMedia(BaseModel):
    platform: Literal["tiktok"] = "tiktok"
    url: str
    video_id: Optional[str] = None
    username: Optional[str] = None
    embed_html: Optional[str] = None
    thumbnail_url: Optional[str] = None
    time_range: Optional[TimeRange] = None

class InstagramMedia(BaseModel):
    platform: Literal["instagram"] = "instagram"
    url: str
    post_id: str
    post_type: Literal["p", "reel", "tv"] = "p"
    embed_url: Optional[str] = None

MediaPayload = Annotated[
    Union[ImageMedia, YouTubeMedia, TikTokMedia, InstagramMedia],
    Field(discriminator="platform"),
]

_media_adapter = TypeAdapter(MediaPayload)

def parse_media(data: Dict[str, Any]):
    """Validate a stored JSON payload into its platform variant"""
    return _media_adapter.validate_python(data)

def preview_image_url(media) -> Optional[str]:
    """Representative image for cards: the image itself or the video thumbnail"""
    if isinstance(media, ImageMedia):
        return media.image_url
    return getattr(media, "thumbnail_url", None)
