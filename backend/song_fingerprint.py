"""Tagged song fingerprints, persisted as plain "kind:value" strings.

  audio:<digest>   Chromaprint of a 30 s clip, SHA-256 truncated to 32 hex chars
  yt:<video id>    YouTube video id
  url:<md5>        MD5 of the raw link (platforms without an identifier)
  file:<md5>       MD5 of an uploaded file's bytes

Two fingerprints are equal only when kind and value both match; there is no
equivalence across kinds, even for the same underlying media.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum


class FingerprintKind(str, Enum):
    AUDIO = "audio"
    PLATFORM_ID = "yt"
    URL_HASH = "url"
    FILE_HASH = "file"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Fingerprint:
    kind: str
    value: str

    def __str__(self):
        return make_fingerprint(self.kind, self.value)


def _kind_str(kind) -> str:
    return kind.value if isinstance(kind, FingerprintKind) else str(kind)


def make_fingerprint(kind, value) -> str:
    """Return the persisted "kind:value" form."""
    return f"{_kind_str(kind)}:{value}"


def parse_fingerprint(fp) -> Fingerprint:
    """Parse "kind:value". A string without a separator has kind "unknown"."""
    if isinstance(fp, Fingerprint):
        return fp
    fp = fp or ""
    kind, sep, value = fp.partition(":")
    if not sep:
        return Fingerprint(FingerprintKind.UNKNOWN.value, fp)
    return Fingerprint(kind, value)


def fingerprints_equal(fp1, fp2) -> bool:
    """True when both fingerprints are present with identical kind and value."""
    if not fp1 or not fp2:
        return False
    a = parse_fingerprint(fp1)
    b = parse_fingerprint(fp2)
    return a.kind == b.kind and a.value == b.value


def platform_fingerprint(identifier) -> str | None:
    """Cheap fingerprint derived from a PlatformIdentifier (YouTube only)."""
    if identifier is None:
        return None
    return make_fingerprint(FingerprintKind.PLATFORM_ID, identifier.id)


def url_fingerprint(url: str) -> str | None:
    if not url:
        return None
    return make_fingerprint(FingerprintKind.URL_HASH, hashlib.md5(url.encode("utf-8")).hexdigest())


def file_fingerprint(path) -> str | None:
    """MD5 of a file's bytes, read in chunks. None when the file is unreadable."""
    digest = hashlib.md5()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(1 << 16), b""):
                digest.update(chunk)
    except OSError:
        return None
    return make_fingerprint(FingerprintKind.FILE_HASH, digest.hexdigest())


def audio_digest(raw_fingerprint) -> str:
    """Compact digest of a raw Chromaprint fingerprint (32 hex chars)."""
    if isinstance(raw_fingerprint, bytes):
        raw_fingerprint = raw_fingerprint.decode("ascii", errors="replace")
    return hashlib.sha256(str(raw_fingerprint).encode("utf-8")).hexdigest()[:32]


def link_fingerprint(identifier, url) -> str | None:
    """Stored fingerprint for a link: yt:<id> when it has an identifier, else url:<md5>."""
    return platform_fingerprint(identifier) or url_fingerprint(url)
