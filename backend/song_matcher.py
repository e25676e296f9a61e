"""Song-name matching for duplicate detection.

Strategy:
  normalize_song_name  — lower-case, drop "(Official Video)"-style qualifiers
                         and the bare words official/lyric(s)/video/audio,
                         separators → space, strip punctuation (keeps word
                         characters and Devanagari), collapse whitespace
  are_song_names_similar — any of:
      • equal normalized names
      • one contains the other (both longer than 3 chars)
      • word overlap ≥ WORD_OVERLAP_THRESHOLD over the shorter word set,
        counting only words longer than 2 chars
  compare_metadata     — title vs title, extracted songs cross product,
                         extracted songs vs the other title (both ways),
                         and ≥ MIN_SHARED_TAGS shared tags longer than 3 chars

Song names are pulled out of video titles ("Song - Artist", "Song (Official
Video)", "🎵 Song") and, on the slow path, out of descriptions and tags
("Song: …", "Track: …", "Music: …", "Original: …", hashtags, 🎵/🎶 markers).
"""

import re
from dataclasses import asdict, dataclass

from app_settings import setting

DEFAULT_WORD_OVERLAP_THRESHOLD = 0.5
DEFAULT_MIN_SHARED_TAGS = 3

DESCRIPTION_MAX_CHARS = 500
MAX_TAGS = 20

# Devanagari block, kept for Hindi titles
_EXTRA_SCRIPT = "\u0900-\u097F"

# ── Normalization ──────────────────────────────────────────────────────────────

_QUALIFIER_RE = re.compile(r"\((?:official|lyric|audio|video|full).*?\)", re.IGNORECASE)
_SEPARATOR_RE = re.compile(r"[|•\-–—:]")
_PUNCT_RE = re.compile(rf"[^\w\s{_EXTRA_SCRIPT}]")
_BARE_WORD_RE = re.compile(r"\b(?:official|lyrics?|video|audio)\b", re.IGNORECASE)


def normalize_song_name(name: str) -> str:
    """Canonical comparable form of a song title or tag. Idempotent."""
    if not name:
        return ""
    s = name.lower()
    s = _QUALIFIER_RE.sub(" ", s)
    s = _SEPARATOR_RE.sub(" ", s)
    s = _PUNCT_RE.sub("", s)
    # Bare words last: punctuation removal can join fragments into one
    s = _BARE_WORD_RE.sub(" ", s)
    return " ".join(s.split())


# ── Similarity ─────────────────────────────────────────────────────────────────

def _significant_words(normalized: str) -> set:
    return {w for w in normalized.split(" ") if len(w) > 2}


def word_overlap(name1: str, name2: str) -> float:
    """Shared significant words over the smaller word set (0.0 when either is empty)."""
    words1 = _significant_words(normalize_song_name(name1))
    words2 = _significant_words(normalize_song_name(name2))
    if not words1 or not words2:
        return 0.0
    return len(words1 & words2) / min(len(words1), len(words2))


def are_song_names_similar(name1: str, name2: str, threshold: float = None) -> bool:
    n1 = normalize_song_name(name1)
    n2 = normalize_song_name(name2)

    if not n1 or not n2:
        return False
    if n1 == n2:
        return True

    if len(n1) > 3 and len(n2) > 3:
        if n1 in n2 or n2 in n1:
            return True

    if threshold is None:
        threshold = setting("WORD_OVERLAP_THRESHOLD", DEFAULT_WORD_OVERLAP_THRESHOLD)
    return word_overlap(n1, n2) >= threshold


# ── Metadata ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SongMetadata:
    title: str = ""
    description: str = ""
    tags: tuple = ()
    extracted_songs: tuple = ()
    normalized_title: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["tags"] = list(self.tags)
        data["extracted_songs"] = list(self.extracted_songs)
        return data

    @classmethod
    def from_dict(cls, data):
        """Rebuild from the stored JSON form. Empty or missing data → None."""
        if not data or not isinstance(data, dict):
            return None
        title = data.get("title") or ""
        return cls(
            title=title,
            description=data.get("description") or "",
            tags=tuple(data.get("tags") or ()),
            extracted_songs=tuple(data.get("extracted_songs") or ()),
            normalized_title=data.get("normalized_title") or normalize_song_name(title),
        )

    @property
    def primary_song(self) -> str:
        """Best display name: first extracted song, else the normalized title."""
        if self.extracted_songs:
            return self.extracted_songs[0]
        return self.normalized_title


def _unique(items) -> tuple:
    seen = set()
    result = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return tuple(result)


# "Song Name - Artist" / "Song Name | xyz", "Song Name (Official Video)", "🎵 Song Name"
_TITLE_PATTERNS = [
    re.compile(r"^(.+?)\s*[-|•]\s*"),
    re.compile(r"^(.+?)\s*\("),
    re.compile(r"[🎵🎶]\s*(.+)"),
]


def songs_from_title(title: str) -> tuple:
    """Candidate song names in a bare video title, normalized, title last."""
    if not title:
        return ()
    songs = []
    for pattern in _TITLE_PATTERNS:
        m = pattern.search(title)
        if m and len(m.group(1)) > 2:
            songs.append(normalize_song_name(m.group(1)))
    normalized = normalize_song_name(title)
    if len(normalized) > 2:
        songs.append(normalized)
    return _unique(songs)


_DESCRIPTION_PATTERNS = [
    re.compile(rf"#([a-zA-Z0-9{_EXTRA_SCRIPT}]+song)", re.IGNORECASE),
    re.compile(rf"#([a-zA-Z0-9{_EXTRA_SCRIPT}]+)", re.IGNORECASE),
    re.compile(r"song[:\-\s]+([^\n\r,]+)", re.IGNORECASE),
    re.compile(r"[🎵🎶]\s*([^\n\r,]+)"),
    re.compile(r"track[:\-\s]+([^\n\r,]+)", re.IGNORECASE),
    re.compile(r"music[:\-\s]+([^\n\r,]+)", re.IGNORECASE),
    re.compile(r"original[:\-\s]+([^\n\r,]+)", re.IGNORECASE),
]


def songs_from_details(details: dict) -> tuple:
    """Candidate song names from a full video record (title, description, tags)."""
    if not details:
        return ()
    text = f"{details.get('title') or ''} {details.get('description') or ''}".lower()

    songs = []
    for pattern in _DESCRIPTION_PATTERNS:
        for m in pattern.finditer(text):
            candidate = m.group(1).strip()
            if 2 < len(candidate) < 50:
                songs.append(normalize_song_name(candidate))

    for tag in details.get("tags") or []:
        if tag and 2 < len(tag) < 50:
            songs.append(normalize_song_name(tag))

    return _unique(songs)


def metadata_from_title(title: str) -> SongMetadata | None:
    """SongMetadata built from a title alone (fast path)."""
    if not title:
        return None
    return SongMetadata(
        title=title,
        extracted_songs=songs_from_title(title),
        normalized_title=normalize_song_name(title),
    )


def metadata_from_details(details: dict) -> SongMetadata | None:
    """SongMetadata built from a full yt-dlp record (slow path)."""
    if not details:
        return None
    title = details.get("title") or ""
    return SongMetadata(
        title=title,
        description=(details.get("description") or "")[:DESCRIPTION_MAX_CHARS],
        tags=tuple((details.get("tags") or [])[:MAX_TAGS]),
        extracted_songs=songs_from_details(details),
        normalized_title=normalize_song_name(title),
    )


def shared_tags(tags1, tags2) -> set:
    """Case-folded tags present in both lists, ignoring tags of 3 chars or fewer."""
    set1 = {t.casefold() for t in tags1 or () if t}
    set2 = {t.casefold() for t in tags2 or () if t}
    return {t for t in set1 & set2 if len(t) > 3}


def compare_metadata(meta1, meta2, threshold: float = None, min_shared_tags: int = None) -> bool:
    """True when two SongMetadata records describe the same song."""
    if not meta1 or not meta2:
        return False

    def similar(a, b):
        return are_song_names_similar(a, b, threshold=threshold)

    if meta1.normalized_title and meta2.normalized_title:
        if similar(meta1.normalized_title, meta2.normalized_title):
            return True

    for song1 in meta1.extracted_songs:
        for song2 in meta2.extracted_songs:
            if similar(song1, song2):
                return True

    if meta2.normalized_title:
        for song1 in meta1.extracted_songs:
            if similar(song1, meta2.normalized_title):
                return True

    if meta1.normalized_title:
        for song2 in meta2.extracted_songs:
            if similar(song2, meta1.normalized_title):
                return True

    if min_shared_tags is None:
        min_shared_tags = setting("MIN_SHARED_TAGS", DEFAULT_MIN_SHARED_TAGS)
    return len(shared_tags(meta1.tags, meta2.tags)) >= min_shared_tags
