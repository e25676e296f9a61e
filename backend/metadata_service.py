"""Song metadata for a link: a fast oEmbed title, or full yt-dlp details.

resolve(url) tries, in order:
  1. YouTube oEmbed (public, unauthenticated, ~5 s timeout, when enabled) → title only;
     song names are split out of the title.
  2. yt-dlp full details (~30 s timeout, only when the yt_dlp module is
     available) → title, description (500 chars), up to 20 tags; song names
     come from description labels, hashtags and tags.
  3. None. Callers must read None as "no opinion", never as a verdict.

Neither path raises: timeouts, network errors and missing tools all resolve
to None. Results are memoised per resolver instance, and a resolver lives for
one check so nothing is shared between concurrent requests.

classify(url) is the not-a-song screen run before any duplicate check.
"""

import asyncio
import logging
import re
from dataclasses import dataclass

import requests as http

from app_settings import setting
from capabilities import get_capabilities
from song_matcher import metadata_from_details, metadata_from_title
from url_downloader import extract_video_id, fetch_video_details

logger = logging.getLogger(__name__)

_OEMBED_URL = "https://www.youtube.com/oembed"
_OEMBED_TIMEOUT = 5
_DETAILS_TIMEOUT = 30


def fetch_oembed_title(url, timeout=_OEMBED_TIMEOUT, endpoint=_OEMBED_URL):
    """Return the video title from YouTube's oEmbed endpoint, or None."""
    video_id = extract_video_id(url)
    if not video_id:
        return None
    try:
        resp = http.get(
            endpoint,
            params={"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"},
            timeout=timeout,
        )
        resp.raise_for_status()
        return resp.json().get("title") or None
    except (http.RequestException, ValueError) as exc:
        logger.debug("[metadata] oEmbed failed for %s: %s", video_id, exc)
        return None


@dataclass(frozen=True)
class ContentCheck:
    is_music: bool
    reason: str = ""


_NON_MUSIC_RE = re.compile(
    r"\b(podcast|vlog|tutorial|how to|unboxing|review|gameplay|walkthrough|"
    r"news|interview|trailer|teaser|episode|lecture|documentary|prank|reaction|recipe)\b",
    re.IGNORECASE,
)

_MUSIC_HINT_RE = re.compile(
    r"\b(songs?|music|lyrics?|audio|remix|cover|karaoke|instrumental|album|ost|"
    r"mashup|dance|bhajan|qawwali|ghazal|dj)\b|[🎵🎶]",
    re.IGNORECASE,
)

_MUSIC_CATEGORY = "Music"


def classify_text(text: str) -> ContentCheck:
    """Keyword screen over a title (and tags): non-music words without any music hint."""
    if not text:
        return ContentCheck(True)
    m = _NON_MUSIC_RE.search(text)
    if m and not _MUSIC_HINT_RE.search(text):
        return ContentCheck(False, f'The title looks like a {m.group(1).lower()}, not a song')
    return ContentCheck(True)


class MetadataResolver:
    """Per-check metadata lookups with memoisation."""

    def __init__(self, capabilities=None, oembed_timeout=None, details_timeout=None):
        self.capabilities = capabilities or get_capabilities()
        self.oembed_timeout = oembed_timeout or setting("OEMBED_TIMEOUT", _OEMBED_TIMEOUT)
        self.details_timeout = details_timeout or setting("VIDEO_DETAILS_TIMEOUT", _DETAILS_TIMEOUT)
        self.oembed_url = setting("OEMBED_URL", _OEMBED_URL)
        self._titles = {}
        self._details = {}
        self._metadata = {}

    async def fetch_title(self, url):
        if url not in self._titles:
            if not self.capabilities.title_lookup.probe():
                self._titles[url] = None
                return None
            self._titles[url] = await self._bounded(
                "oEmbed", url, self.oembed_timeout,
                fetch_oembed_title, url, self.oembed_timeout, self.oembed_url,
            )
        return self._titles[url]

    async def fetch_details(self, url):
        if url not in self._details:
            if not self.capabilities.video_details.probe():
                logger.debug("[metadata] yt_dlp unavailable, no details for %s", url)
                self._details[url] = None
            else:
                self._details[url] = await self._bounded(
                    "yt-dlp details", url, self.details_timeout,
                    fetch_video_details, url, self.details_timeout,
                )
        return self._details[url]

    async def resolve(self, url):
        """Return SongMetadata for a link, or None when nothing could be learned."""
        if url in self._metadata:
            return self._metadata[url]

        metadata = None
        if extract_video_id(url):
            title = await self.fetch_title(url)
            if title:
                metadata = metadata_from_title(title)
            else:
                metadata = metadata_from_details(await self.fetch_details(url))

        logger.debug(
            "[metadata] %s → %s", url,
            metadata.normalized_title if metadata else None,
        )
        self._metadata[url] = metadata
        return metadata

    async def classify(self, url) -> ContentCheck:
        """Decide whether a video link is a song.

        Uses the yt-dlp category/duration when available, then a keyword
        screen over the title and tags. Unknown content counts as music:
        missing tools never block a submission.
        """
        details = None
        if setting("CONTENT_CHECK_USE_DETAILS", True):
            details = await self.fetch_details(url)

        if details:
            if _MUSIC_CATEGORY in (details.get("categories") or []):
                return ContentCheck(True)
            duration = details.get("duration")
            max_duration = setting("MAX_SONG_DURATION", 900)
            if duration and float(duration) > max_duration:
                minutes = int(float(duration) // 60)
                return ContentCheck(False, f"The video is {minutes} minutes long, too long for a song")
            text = " ".join([details.get("title") or ""] + list(details.get("tags") or []))
            return classify_text(text)

        return classify_text(await self.fetch_title(url) or "")

    async def _bounded(self, label, url, timeout, func, *args):
        """Run a blocking lookup in a thread with a hard timeout; failures → None."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout)
        except asyncio.TimeoutError:
            logger.warning("[metadata] %s timed out after %ss for %s", label, timeout, url)
        except Exception as exc:
            logger.warning("[metadata] %s failed for %s: %s", label, url, exc)
        return None
