"""Song link parsing and yt-dlp access.

extract_identifier(url)          → PlatformIdentifier | None   (pure, no I/O)
fetch_video_details(url)         → dict | None   (yt_dlp module, no download)
download_audio_clip(url, dir)    → path | None   (yt-dlp CLI, cached per video id)

Only YouTube links carry an identifier. Spotify / JioSaavn / SoundCloud links
are accepted as opaque URLs: no identifier, no metadata, no audio.
"""

import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass

from ffmpeg_utils import find_ffmpeg_dir

logger = logging.getLogger(__name__)

YOUTUBE = "youtube"


def detect_platform(url):
    """Detect the music platform from a URL."""
    if not url:
        return "unknown"
    if "soundcloud.com" in url:
        return "soundcloud"
    if "spotify.com" in url:
        return "spotify"
    if "jiosaavn.com" in url or "saavn.com" in url:
        return "jiosaavn"
    if "music.youtube.com" in url or "youtube.com" in url or "youtu.be" in url:
        return YOUTUBE
    return "unknown"


@dataclass(frozen=True)
class PlatformIdentifier:
    platform: str
    id: str

    def __str__(self):
        return f"{self.platform}:{self.id}"


# Order matters: the first capturing match wins.
_YOUTUBE_PATTERNS = [
    # www., m. and music.youtube.com watch pages; v= may follow other params
    re.compile(r"youtube\.com/watch\?(?:[^#\s]*&)?v=([^&\s?#]+)"),
    re.compile(r"youtu\.be/([^&\s?#]+)"),
    re.compile(r"youtube\.com/embed/([^&\s?#]+)"),
    re.compile(r"youtube\.com/v/([^&\s?#]+)"),
    re.compile(r"youtube\.com/shorts/([^&\s?#]+)"),
]


def extract_identifier(url):
    """Return the PlatformIdentifier for a YouTube URL, or None.

    Handles watch pages, youtu.be short links, embeds, /v/ links, Shorts and
    music.youtube.com. Anything else yields None.
    """
    if not url:
        return None
    for pattern in _YOUTUBE_PATTERNS:
        m = pattern.search(url)
        if m:
            return PlatformIdentifier(YOUTUBE, m.group(1))
    return None


def extract_video_id(url):
    """Return just the YouTube video id for a URL, or None."""
    ident = extract_identifier(url)
    return ident.id if ident else None


def _find_yt_dlp():
    """Find yt-dlp executable."""
    path = shutil.which("yt-dlp")
    if path:
        return path
    raise FileNotFoundError(
        "yt-dlp not found. Install it with: pip install yt-dlp"
    )


# ── Full video details (slow metadata path) ───────────────────────────────────

def _ydl_opts(timeout):
    return {
        "quiet": True,
        "no_warnings": True,
        "skip_download": True,
        "noplaylist": True,
        "socket_timeout": timeout,
    }


def fetch_video_details(url, timeout=30):
    """Return title/description/tags/uploader/duration/categories for a video.

    Uses the yt_dlp module without downloading anything. Returns None on any
    failure (unknown link, network error, removed video).
    """
    if not extract_identifier(url):
        return None

    try:
        import yt_dlp

        with yt_dlp.YoutubeDL(_ydl_opts(timeout)) as ydl:
            info = ydl.extract_info(url, download=False)
    except Exception as exc:
        logger.debug("yt-dlp metadata failed for %r: %s", url, exc)
        return None

    if not info:
        return None
    return {
        "title": info.get("title") or "",
        "description": info.get("description") or "",
        "tags": info.get("tags") or [],
        "uploader": info.get("uploader") or "",
        "channel": info.get("channel") or "",
        "duration": info.get("duration"),
        "categories": info.get("categories") or [],
    }


# ── Audio clip download ───────────────────────────────────────────────────────

def clip_path(output_dir, video_id):
    return os.path.join(str(output_dir), f"{video_id}.mp3")


def _run_yt_dlp(cmd, timeout):
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, encoding="utf-8",
            errors="replace", timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("[download] yt-dlp timed out after %ss", timeout)
        return False
    except OSError as exc:
        logger.warning("[download] yt-dlp could not start: %s", exc)
        return False
    if result.returncode != 0:
        logger.debug("[download] yt-dlp exited %s: %s", result.returncode, result.stderr[-300:])
        return False
    return True


def download_audio_clip(url, output_dir, clip_seconds=30, timeout=60, full_timeout=120):
    """Download the first `clip_seconds` of audio for a YouTube URL as mp3.

    The clip is cached as <output_dir>/<video_id>.mp3; an existing file is
    returned without downloading again. When the sectioned download leaves no
    file (some videos do not support it) the whole track is fetched instead.

    Returns the clip path, or None on any failure.
    """
    video_id = extract_video_id(url)
    if not video_id:
        return None

    os.makedirs(output_dir, exist_ok=True)
    final_audio = clip_path(output_dir, video_id)
    if os.path.exists(final_audio):
        logger.debug("[download] cache hit for %s", video_id)
        return final_audio

    try:
        yt_dlp = _find_yt_dlp()
    except FileNotFoundError as exc:
        logger.warning("[download] %s", exc)
        return None

    base_cmd = [yt_dlp]
    ffmpeg_dir = find_ffmpeg_dir()
    if ffmpeg_dir:
        base_cmd += ["--ffmpeg-location", ffmpeg_dir]
    base_cmd += [
        "-x",
        "--audio-format", "mp3",
        "--audio-quality", "5",
        "--no-playlist",
        "-o", os.path.join(str(output_dir), f"{video_id}.%(ext)s"),
    ]

    sectioned = base_cmd + ["--download-sections", f"*0-{clip_seconds}", url]
    if _run_yt_dlp(sectioned, timeout) and os.path.exists(final_audio):
        return final_audio

    logger.debug("[download] sectioned download gave no file for %s, fetching full track", video_id)
    if _run_yt_dlp(base_cmd + [url], full_timeout) and os.path.exists(final_audio):
        return final_audio
    return None
