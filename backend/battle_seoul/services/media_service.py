"""
Media link detection for uploads
"""

import logging
import re
from typing import Any, Dict, Optional
import httpx
from battle_seoul.core.config import Settings, settings as default_settings
from battle_seoul.core.exceptions import MediaDetectionError
from battle_seoul.core.utils import parse_time_to_seconds
from battle_seoul.models.contender import Platform
from battle_seoul.schemas.contender_schemas import ContenderUpload
from battle_seoul.schemas.media_schemas import (
    ImageMedia,
    InstagramMedia,
    TikTokMedia,
    TimeRange,
    YouTubeMedia,
)

logger = logging.getLogger(__name__)

# regular videos, shorts, embeds, youtu.be links and live streams
YOUTUBE_PATTERN = re.compile(
    r"(?:youtube\.com/(?:watch\?v=|embed/|v/|live/|shorts/)|youtu\.be/)([a-zA-Z0-9_-]{11})"
    r"|youtube\.com/live/([a-zA-Z0-9_-]+)"
)
YOUTUBE_START_PATTERN = re.compile(r"[?&](?:t|start)=(\d+)")
TIKTOK_PATTERN = re.compile(
    r"tiktok\.com/@[\w.-]+/video/(\d+)"
    r"|tiktok\.com/t/(\w+)"
    r"|vm\.tiktok\.com/(\w+)"
    r"|tiktok\.com/v/(\d+)"
    r"|m\.tiktok\.com"
)
TIKTOK_USER_PATTERN = re.compile(r"@([\w.-]+)")
INSTAGRAM_PATTERN = re.compile(r"instagram\.com/(p|reel|tv)/([A-Za-z0-9_-]+)")


def detect_platform(url: str) -> Optional[Platform]:
    """Platform of a link, or None when unsupported"""
    if not url:
        return None
    if YOUTUBE_PATTERN.search(url):
        return Platform.YOUTUBE
    if TIKTOK_PATTERN.search(url):
        return Platform.TIKTOK
    if INSTAGRAM_PATTERN.search(url):
        return Platform.INSTAGRAM
    return None


def build_time_range(start_time: Optional[str], end_time: Optional[str], url_start: int = 0) -> Optional[TimeRange]:
    """User-entered trim wins over a ?t= offset found in the link"""
    if start_time or end_time:
        start_seconds = parse_time_to_seconds(start_time)
        end_seconds = parse_time_to_seconds(end_time)
        if end_seconds and end_seconds <= start_seconds:
            raise MediaDetectionError("trim end must be after trim start")
        return TimeRange(start_seconds=start_seconds, end_seconds=end_seconds)
    if url_start > 0:
        return TimeRange(start_seconds=url_start, end_seconds=0)
    return None


class MediaService:
    """Turns an upload's link into a platform-tagged media payload"""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or default_settings
        self.timeout = self.settings.HTTP_TIMEOUT
        self.transport = transport

    async def build_media(self, upload: ContenderUpload):
        """Media payload for an upload; an image URL is used when no link is given"""
        if upload.url:
            return await self.detect_and_extract(upload.url, upload.start_time, upload.end_time)
        return ImageMedia(image_url=upload.image_url)

    async def detect_and_extract(self, url: str, start_time: Optional[str] = None, end_time: Optional[str] = None):
        url = url.strip()
        platform = detect_platform(url)
        if platform == Platform.YOUTUBE:
            return self._youtube_media(url, start_time, end_time)
        if platform == Platform.TIKTOK:
            return await self._tiktok_media(url, start_time, end_time)
        if platform == Platform.INSTAGRAM:
            return self._instagram_media(url)
        raise MediaDetectionError(f"unsupported media link: {url}")

    def _youtube_media(self, url: str, start_time: Optional[str], end_time: Optional[str]) -> YouTubeMedia:
        match = YOUTUBE_PATTERN.search(url)
        video_id = match.group(1) or match.group(2)
        start_match = YOUTUBE_START_PATTERN.search(url)
        url_start = int(start_match.group(1)) if start_match else 0

        if "/live/" in url:
            content_type = "live"
        elif "/shorts/" in url:
            content_type = "shorts"
        else:
            content_type = "video"

        return YouTubeMedia(
            url=url,
            video_id=video_id,
            thumbnail_url=f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg",
            embed_url=f"https://www.youtube.com/embed/{video_id}",
            content_type=content_type,
            time_range=build_time_range(start_time, end_time, url_start),
        )

    async def _tiktok_media(self, url: str, start_time: Optional[str], end_time: Optional[str]) -> TikTokMedia:
        match = TIKTOK_PATTERN.search(url)
        video_id = next((group for group in match.groups() if group), None)
        user_match = TIKTOK_USER_PATTERN.search(url)
        username = user_match.group(1) if user_match else None

        oembed = await self._fetch_tiktok_oembed(url)
        if oembed:
            return TikTokMedia(
                url=url,
                video_id=video_id,
                username=username or oembed.get("author_name"),
                embed_html=oembed.get("html"),
                thumbnail_url=oembed.get("thumbnail_url"),
                time_range=build_time_range(start_time, end_time),
            )
        return TikTokMedia(
            url=url,
            video_id=video_id,
            username=username,
            time_range=build_time_range(start_time, end_time),
        )

    def _instagram_media(self, url: str) -> InstagramMedia:
        match = INSTAGRAM_PATTERN.search(url)
        post_type, post_id = match.group(1), match.group(2)
        return InstagramMedia(
            url=url,
            post_id=post_id,
            post_type=post_type,
            embed_url=f"https://www.instagram.com/{post_type}/{post_id}/embed/",
        )

    async def _fetch_tiktok_oembed(self, url: str) -> Optional[Dict[str, Any]]:
        """TikTok oEmbed data, or None when the API is unreachable"""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.settings.TIKTOK_OEMBED_URL, params={"url": url})
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("TikTok oEmbed lookup failed, using link data only", extra={"url": url, "error": str(e)})
            return None
