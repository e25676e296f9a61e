"""Duplicate-song decision cascade.

check_candidate — run when a participant adds a song to their batch. Stages,
cheapest first, stopping at the first match:

  1. not-a-song screen (YouTube links only; a failure here is a server error)
  2. exact URL already accepted                         → exact-url
  3. same YouTube video id already accepted            → same-platform-id
  4. same stored fingerprint (yt:<id> or url:<md5>, or an
     upload's audio:/file: fingerprint)                → same-fingerprint / audio-match
  5. metadata match against accepted songs             → metadata-match
  6. same link / video id already in the pending batch → exact-url / same-platform-id
  7. metadata match against the pending batch          → metadata-match
  8. accept, returning the cheapest fingerprint to persist

Stages 4–7 abstain on any error: a missing tool or a failed lookup can only
make the check less thorough, it never blocks a song or flags a duplicate.

compare_two_references — the "are these the same song?" tool:
identical URLs (100) → same video (100) → metadata (90) → audio (85) → 0.

Every stage runs after the previous one resolves; there is no locking
across checks, the accepted-songs snapshot is read once per call.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from acoustid_service import AudioFingerprinter
from capabilities import get_capabilities
from exceptions import ContentCheckError, InvalidReferenceError
from metadata_service import MetadataResolver
from song_fingerprint import (
    FingerprintKind,
    fingerprints_equal,
    link_fingerprint,
    parse_fingerprint,
    platform_fingerprint,
    url_fingerprint,
)
from song_matcher import SongMetadata, compare_metadata
from url_downloader import YOUTUBE, detect_platform, extract_identifier

logger = logging.getLogger(__name__)


class ReasonCode(str, Enum):
    EXACT_URL = "exact-url"
    SAME_PLATFORM_ID = "same-platform-id"
    SAME_FINGERPRINT = "same-fingerprint"
    METADATA_MATCH = "metadata-match"
    AUDIO_MATCH = "audio-match"
    NONE = "none"


@dataclass(frozen=True)
class MediaReference:
    """The song being checked: a link, an uploaded file path, or both."""
    url: str = ""
    file_path: str = None


@dataclass(frozen=True)
class AcceptedSong:
    """One previously accepted song, as read from the record store."""
    url: str = ""
    fingerprint: str = ""
    metadata: SongMetadata = None
    song_name: str = ""
    submission_id: int = None


@dataclass(frozen=True)
class DuplicateVerdict:
    is_duplicate: bool
    reason: ReasonCode
    message: str
    matched_against: object = None

    @classmethod
    def no_match(cls):
        return cls(False, ReasonCode.NONE, "Song is available!")


@dataclass(frozen=True)
class CheckResult:
    accepted: bool
    fingerprint: str = None
    error_message: str = None
    verdict: DuplicateVerdict = None
    not_music: bool = False

    def to_dict(self):
        data = {"accepted": self.accepted}
        if self.fingerprint:
            data["fingerprint"] = self.fingerprint
        if self.error_message:
            data["error_message"] = self.error_message
        if self.verdict is not None:
            data["reason"] = self.verdict.reason.value
        return data


@dataclass(frozen=True)
class ComparisonResult:
    is_same: bool
    similarity_percent: int
    reason_code: str
    message: str
    song1: str = ""
    song2: str = ""

    def to_dict(self):
        return {
            "isSame": self.is_same,
            "similarity": self.similarity_percent,
            "reason": self.reason_code,
            "message": self.message,
            "song1": self.song1,
            "song2": self.song2,
        }


def _clean_url(value):
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidReferenceError("Song links must be text")
    return value.strip()


def _duplicate(reason, message, matched=None):
    return DuplicateVerdict(True, reason, message, matched)


class DuplicateChecker:
    """Runs the cascade for one request. Not shared between requests."""

    def __init__(self, capabilities=None, resolver=None, fingerprinter=None):
        self.capabilities = capabilities or get_capabilities()
        self.resolver = resolver or MetadataResolver(capabilities=self.capabilities)
        self.fingerprinter = fingerprinter or AudioFingerprinter(capabilities=self.capabilities)

    # ── checkAgainstDatabase ──────────────────────────────────────────────────

    async def check_candidate(self, reference, accepted_songs, pending_links=()):
        """Decide whether `reference` may join the batch.

        accepted_songs is the store snapshot (AcceptedSong values), pending_links
        the links already staged in this participant's batch.
        """
        url = _clean_url(reference.url)
        if not url and not reference.file_path:
            raise InvalidReferenceError("Please provide a song link or upload a file")
        pending_links = [p for p in map(_clean_url, pending_links or ()) if p]
        identifier = extract_identifier(url)

        screen = await self._screen_content(url)
        if screen is not None:
            return screen

        upload_fp = None
        if reference.file_path:
            upload_fp = await self._abstaining(
                "upload fingerprint", self.fingerprinter.fingerprint_upload(reference.file_path),
            )

        verdict = (
            self.match_stored(url, accepted_songs, upload_fp)
            or await self._abstaining("metadata vs accepted", self._match_accepted_metadata(url, accepted_songs))
            or self._match_pending_links(url, identifier, pending_links)
            or await self._abstaining("metadata vs pending", self._match_pending_metadata(url, pending_links))
        )
        if verdict:
            logger.info("[check] %s rejected: %s", url or reference.file_path, verdict.reason.value)
            return CheckResult(False, error_message=verdict.message, verdict=verdict)

        fingerprint = platform_fingerprint(identifier) or upload_fp or url_fingerprint(url)
        logger.info("[check] %s accepted (fingerprint=%s)", url or reference.file_path, fingerprint)
        return CheckResult(True, fingerprint=fingerprint, verdict=DuplicateVerdict.no_match())

    def match_stored(self, url, accepted_songs, upload_fp=None):
        """Stages 2–4 only (exact URL, video id, stored fingerprint). No I/O."""
        identifier = extract_identifier(url)
        return (
            self._match_exact_url(url, accepted_songs)
            or self._match_platform_id(identifier, accepted_songs)
            or self._match_fingerprint(link_fingerprint(identifier, url), upload_fp, accepted_songs)
        )

    async def _screen_content(self, url):
        if not url or detect_platform(url) != YOUTUBE:
            return None
        try:
            content = await self.resolver.classify(url)
        except Exception as exc:
            logger.exception("[check] content screen failed for %s", url)
            raise ContentCheckError(f"Could not classify {url}") from exc
        if content.is_music:
            return None
        message = (
            f"This doesn't appear to be a song. {content.reason}. "
            "Please add a music/song video link."
        )
        return CheckResult(False, error_message=message, not_music=True)

    def _match_exact_url(self, url, accepted_songs):
        if not url:
            return None
        for song in accepted_songs:
            if song.url and song.url == url:
                return _duplicate(
                    ReasonCode.EXACT_URL,
                    "This exact link is already used. Please choose a different song.",
                    song,
                )
        return None

    def _match_platform_id(self, identifier, accepted_songs):
        if identifier is None:
            return None
        for song in accepted_songs:
            if extract_identifier(song.url) == identifier:
                return _duplicate(
                    ReasonCode.SAME_PLATFORM_ID,
                    "This YouTube video is already selected. Please choose a different song.",
                    song,
                )
        return None

    def _match_fingerprint(self, link_fp, upload_fp, accepted_songs):
        candidates = [fp for fp in (link_fp, upload_fp) if fp]
        for fp in candidates:
            for song in accepted_songs:
                if not fingerprints_equal(fp, song.fingerprint):
                    continue
                if parse_fingerprint(fp).kind == FingerprintKind.AUDIO.value:
                    return _duplicate(
                        ReasonCode.AUDIO_MATCH,
                        "This song sounds the same as one already submitted. Please choose a different song.",
                        song,
                    )
                return _duplicate(
                    ReasonCode.SAME_FINGERPRINT,
                    "This song is already selected. Please choose a different song.",
                    song,
                )
        return None

    async def _match_accepted_metadata(self, url, accepted_songs):
        if not url or not any(song.metadata for song in accepted_songs):
            return None
        new_meta = await self.resolver.resolve(url)
        if not new_meta or not new_meta.normalized_title:
            return None
        for song in accepted_songs:
            if song.metadata and compare_metadata(new_meta, song.metadata):
                return _duplicate(
                    ReasonCode.METADATA_MATCH,
                    f'Same song detected! "{new_meta.normalized_title}" is already submitted.',
                    song,
                )
        return None

    def _match_pending_links(self, url, identifier, pending_links):
        for pending in pending_links:
            if url and pending == url:
                return _duplicate(
                    ReasonCode.EXACT_URL,
                    "This exact link is already in your list.",
                    pending,
                )
            if identifier is not None and extract_identifier(pending) == identifier:
                return _duplicate(
                    ReasonCode.SAME_PLATFORM_ID,
                    "This is the same YouTube video as one you already added.",
                    pending,
                )
        return None

    async def _match_pending_metadata(self, url, pending_links):
        if not url or not pending_links:
            return None
        new_meta = await self.resolver.resolve(url)
        if not new_meta or not new_meta.extracted_songs:
            return None
        for pending in pending_links:
            pending_meta = await self.resolver.resolve(pending)
            if pending_meta and compare_metadata(new_meta, pending_meta):
                return _duplicate(
                    ReasonCode.METADATA_MATCH,
                    f'Same song detected! "{new_meta.extracted_songs[0]}" is already in your list.',
                    pending,
                )
        return None

    async def _abstaining(self, stage, awaitable):
        """Await a stage; any error means the stage has no opinion."""
        try:
            return await awaitable
        except Exception as exc:
            logger.warning("[check] %s skipped: %s", stage, exc)
            return None

    # ── compareTwoSongs ───────────────────────────────────────────────────────

    async def compare_two_references(self, url1, url2):
        url1 = _clean_url(url1)
        url2 = _clean_url(url2)
        if not url1 or not url2:
            raise InvalidReferenceError("Please provide both song links")

        if url1 == url2:
            return ComparisonResult(True, 100, "exact_url", "These are the exact same link!")

        id1 = extract_identifier(url1)
        id2 = extract_identifier(url2)
        if id1 is not None and id1 == id2:
            return ComparisonResult(True, 100, "same_video", "These links point to the same YouTube video!")

        meta1 = await self._abstaining("metadata", self.resolver.resolve(url1))
        meta2 = await self._abstaining("metadata", self.resolver.resolve(url2))
        if compare_metadata(meta1, meta2):
            return ComparisonResult(
                True, 90, "metadata_match",
                "These appear to be the same song based on video title, description or hashtags!",
                meta1.primary_song or "Unknown",
                meta2.primary_song or "Unknown",
            )

        if self.fingerprinter.available:
            fp1 = await self._abstaining("audio", self.fingerprinter.fingerprint_url(url1))
            fp2 = await self._abstaining("audio", self.fingerprinter.fingerprint_url(url2))
            if fp1 and fp2 and fingerprints_equal(fp1, fp2):
                return ComparisonResult(
                    True, 85, "audio_match",
                    "These songs have matching audio fingerprints, they sound the same!",
                )

        return ComparisonResult(
            False, 0, "different", "These appear to be different songs!",
            _display_name(meta1, id1, "Song 1"),
            _display_name(meta2, id2, "Song 2"),
        )


def _display_name(metadata, identifier, fallback):
    if metadata and metadata.primary_song:
        return metadata.primary_song
    if identifier is not None:
        return f"YouTube: {identifier.id}"
    return fallback


async def check_candidate(url, accepted_songs, file_path=None, pending_links=(), capabilities=None):
    """checkCandidate(url, file?, pendingLinks[]) → CheckResult."""
    checker = DuplicateChecker(capabilities=capabilities)
    return await checker.check_candidate(MediaReference(url or "", file_path), accepted_songs, pending_links)


async def compare_two_references(url1, url2, capabilities=None):
    """compareTwoReferences(urlA, urlB) → ComparisonResult."""
    checker = DuplicateChecker(capabilities=capabilities)
    return await checker.compare_two_references(url1, url2)
