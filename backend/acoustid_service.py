"""Chromaprint audio fingerprints for song links and uploaded files.

Workflow:
  1. download_audio_clip(url) — first 30 s of audio via yt-dlp, cached on disk
     as <AUDIO_CACHE_DIR>/<video id>.mp3 (a repeat request skips the download)
  2. fingerprint_audio(path)  — Chromaprint via pyacoustid / fpcalc
  3. audio_digest(raw)        — SHA-256 of the raw fingerprint, 32 hex chars,
                                stored as "audio:<digest>"

Both tools are soft dependencies: when yt-dlp or fpcalc is missing the
pipeline returns None straight away. Download or calculation errors and
timeouts also return None; nothing here raises to the caller.

Two audio fingerprints match only when their digests are identical.

Cached clips are removed by sweep_audio_cache(), run on a schedule by
AudioCacheSweeper (started in api.apps) or by the sweep_audio_cache command.

Dependencies:
    pip install pyacoustid yt-dlp
    brew install chromaprint          # macOS
    apt install libchromaprint-tools  # Ubuntu/Debian
"""

import asyncio
import logging
import os
import threading
import time

from app_settings import setting
from capabilities import get_capabilities
from song_fingerprint import FingerprintKind, audio_digest, file_fingerprint, make_fingerprint
from url_downloader import download_audio_clip

logger = logging.getLogger(__name__)

_CLIP_SECONDS = 30
_DOWNLOAD_TIMEOUT = 60
_FULL_DOWNLOAD_TIMEOUT = 120
_FINGERPRINT_TIMEOUT = 30
_CACHE_TTL = 3600


def audio_cache_dir() -> str:
    return str(setting("AUDIO_CACHE_DIR", os.path.join(os.getcwd(), "audio_cache")))


def fingerprint_audio(path: str, max_length: int = _CLIP_SECONDS):
    """Generate a raw Chromaprint fingerprint for an audio file using fpcalc.

    Returns the fingerprint string, or None on failure.
    """
    if not path or not os.path.exists(path):
        return None
    try:
        import acoustid
        duration, fingerprint = acoustid.fingerprint_file(path, maxlength=max_length, force_fpcalc=True)
    except Exception as exc:
        logger.debug("[audio_fp] Chromaprint failed for %r: %s", path, exc)
        return None
    return fingerprint or None


class AudioFingerprinter:
    """Computes "audio:<digest>" fingerprints; every failure resolves to None."""

    def __init__(self, capabilities=None, cache_dir=None):
        self.capabilities = capabilities or get_capabilities()
        self.cache_dir = cache_dir or audio_cache_dir()
        self.clip_seconds = setting("AUDIO_CLIP_SECONDS", _CLIP_SECONDS)
        self.download_timeout = setting("AUDIO_DOWNLOAD_TIMEOUT", _DOWNLOAD_TIMEOUT)
        self.full_download_timeout = setting("AUDIO_FULL_DOWNLOAD_TIMEOUT", _FULL_DOWNLOAD_TIMEOUT)
        self.fingerprint_timeout = setting("FINGERPRINT_TIMEOUT", _FINGERPRINT_TIMEOUT)

    @property
    def available(self) -> bool:
        return self.capabilities.audio_pipeline

    async def fingerprint_url(self, url):
        if not self.available:
            logger.debug("[audio_fp] yt-dlp/fpcalc unavailable, skipping %s", url)
            return None

        # subprocess.run enforces the download timeouts; the outer bound also
        # covers the sectioned attempt followed by the full-track fallback.
        outer = self.download_timeout + self.full_download_timeout
        clip = await self._bounded(
            "download", url, outer,
            download_audio_clip, url, self.cache_dir, self.clip_seconds,
            self.download_timeout, self.full_download_timeout,
        )
        if not clip:
            return None
        return await self._digest(clip)

    async def fingerprint_file(self, path):
        if not self.capabilities.audio_fingerprint.probe():
            logger.debug("[audio_fp] fpcalc unavailable, skipping %s", path)
            return None
        return await self._digest(path)

    async def fingerprint_upload(self, path):
        """Fingerprint an uploaded file: audio digest when possible, else a byte hash."""
        fp = await self.fingerprint_file(path)
        if fp:
            return fp
        return await asyncio.to_thread(file_fingerprint, path)

    async def _digest(self, path):
        raw = await self._bounded(
            "fpcalc", path, self.fingerprint_timeout,
            fingerprint_audio, path, self.clip_seconds,
        )
        if not raw:
            return None
        fp = make_fingerprint(FingerprintKind.AUDIO, audio_digest(raw))
        logger.debug("[audio_fp] %s → %s", path, fp)
        return fp

    async def _bounded(self, label, target, timeout, func, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout)
        except asyncio.TimeoutError:
            logger.warning("[audio_fp] %s timed out after %ss for %s", label, timeout, target)
        except Exception as exc:
            logger.warning("[audio_fp] %s failed for %s: %s", label, target, exc)
        return None


async def compute_audio_fingerprint(url=None, file_path=None, capabilities=None):
    """Return "audio:<digest>" for a link or a local file, or None."""
    fingerprinter = AudioFingerprinter(capabilities=capabilities)
    if file_path:
        return await fingerprinter.fingerprint_file(file_path)
    if url:
        return await fingerprinter.fingerprint_url(url)
    return None


# ── Clip cache sweep ──────────────────────────────────────────────────────────

def sweep_audio_cache(cache_dir=None, max_age=None, now=None) -> int:
    """Delete cached clips older than max_age seconds. Returns the number removed."""
    cache_dir = cache_dir or audio_cache_dir()
    max_age = max_age if max_age is not None else setting("AUDIO_CACHE_TTL", _CACHE_TTL)
    now = now if now is not None else time.time()

    if not os.path.isdir(cache_dir):
        return 0

    removed = 0
    for name in os.listdir(cache_dir):
        path = os.path.join(cache_dir, name)
        try:
            if not os.path.isfile(path):
                continue
            if now - os.path.getmtime(path) > max_age:
                os.remove(path)
                removed += 1
        except OSError as exc:
            # Another request may be writing or removing the same clip
            logger.debug("[sweep] could not remove %s: %s", path, exc)
    if removed:
        logger.info("[sweep] removed %d cached clip(s) from %s", removed, cache_dir)
    return removed


class AudioCacheSweeper:
    """Runs sweep_audio_cache every `interval` seconds on a daemon thread.

    Owned by the process lifecycle: start() once at startup, stop() at exit.
    """

    def __init__(self, interval=None, max_age=None, cache_dir=None):
        self.interval = interval or setting("AUDIO_CACHE_SWEEP_INTERVAL", _CACHE_TTL)
        self.max_age = max_age
        self.cache_dir = cache_dir
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="audio-cache-sweeper", daemon=True)
        self._thread.start()
        logger.info("[sweep] started, every %ss", self.interval)

    def stop(self, timeout=5):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("[sweep] stopped")

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                sweep_audio_cache(self.cache_dir, self.max_age)
            except Exception as exc:
                logger.warning("[sweep] sweep failed: %s", exc)
