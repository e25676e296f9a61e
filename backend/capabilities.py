"""Soft external dependencies, probed once and injected into the check cascade.

Four capabilities gate the network and tool stages:

  title_lookup       — public YouTube oEmbed title endpoint (OEMBED_ENABLED)
  video_details      — full metadata lookup through the yt_dlp module
  audio_download     — clip download through the yt-dlp CLI (needs ffmpeg to
                       extract the audio track)
  audio_fingerprint  — Chromaprint calculation through fpcalc

A missing capability is never an error: the stage that needs it is skipped.
The process-wide bundle is selected at app start (see api.apps.ApiConfig) and
tests pass Capabilities.none() or a hand-built bundle instead.
"""

import importlib.util
import logging
import shutil
from dataclasses import dataclass, field

from app_settings import setting
from ffmpeg_utils import find_ffmpeg

logger = logging.getLogger(__name__)


class Capability:
    """Base class: a named external tool that may or may not be present."""

    name = "capability"

    def __init__(self):
        self._available = None

    def probe(self) -> bool:
        """Return True when the tool can be used. The first result is cached."""
        if self._available is None:
            try:
                self._available = bool(self._check())
            except Exception as exc:
                logger.warning("[capabilities] probe for %s failed: %s", self.name, exc)
                self._available = False
            logger.debug("[capabilities] %s available=%s", self.name, self._available)
        return self._available

    def _check(self) -> bool:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class ExecutableCapability(Capability):
    """Present when an executable is found on PATH (or by a custom finder)."""

    def __init__(self, binary: str, finder=None):
        super().__init__()
        self.name = binary
        self._finder = finder or shutil.which

    def _check(self) -> bool:
        return self._finder(self.name) is not None


class ModuleCapability(Capability):
    """Present when a Python module can be imported."""

    def __init__(self, module: str):
        super().__init__()
        self.name = module

    def _check(self) -> bool:
        return importlib.util.find_spec(self.name) is not None


class CombinedCapability(Capability):
    """Present only when every part is present."""

    def __init__(self, name: str, *parts: Capability):
        super().__init__()
        self.name = name
        self.parts = parts

    def _check(self) -> bool:
        return all(part.probe() for part in self.parts)


class UnavailableCapability(Capability):
    """No-op capability: always missing."""

    def __init__(self, name: str = "unavailable"):
        super().__init__()
        self.name = name

    def _check(self) -> bool:
        return False


class StaticCapability(Capability):
    """Capability with a fixed answer, handy for tests and settings overrides."""

    def __init__(self, name: str, available: bool):
        super().__init__()
        self.name = name
        self._fixed = available

    def _check(self) -> bool:
        return self._fixed


def _ffmpeg_finder(_name):
    return find_ffmpeg()


@dataclass
class Capabilities:
    title_lookup: Capability = field(default_factory=lambda: UnavailableCapability("oembed"))
    video_details: Capability = field(default_factory=lambda: UnavailableCapability("yt_dlp"))
    audio_download: Capability = field(default_factory=lambda: UnavailableCapability("yt-dlp"))
    audio_fingerprint: Capability = field(default_factory=lambda: UnavailableCapability("fpcalc"))

    @classmethod
    def detect(cls) -> "Capabilities":
        """Build the real bundle from the host's installed tools."""
        return cls(
            title_lookup=StaticCapability("oembed", bool(setting("OEMBED_ENABLED", True))),
            video_details=ModuleCapability("yt_dlp"),
            audio_download=CombinedCapability(
                "yt-dlp+ffmpeg",
                ExecutableCapability("yt-dlp"),
                ExecutableCapability("ffmpeg", finder=_ffmpeg_finder),
            ),
            audio_fingerprint=CombinedCapability(
                "fpcalc",
                ExecutableCapability("fpcalc"),
                ModuleCapability("acoustid"),
            ),
        )

    @classmethod
    def none(cls) -> "Capabilities":
        """Bundle with every capability missing."""
        return cls()

    @property
    def audio_pipeline(self) -> bool:
        """Audio fingerprinting of a URL needs both the downloader and fpcalc."""
        return self.audio_download.probe() and self.audio_fingerprint.probe()

    def report(self) -> dict:
        return {
            "title_lookup": self.title_lookup.probe(),
            "video_details": self.video_details.probe(),
            "audio_download": self.audio_download.probe(),
            "audio_fingerprint": self.audio_fingerprint.probe(),
        }


_capabilities = None


def init_capabilities(capabilities: Capabilities = None) -> Capabilities:
    """Select the process-wide bundle. Called once at startup."""
    global _capabilities
    _capabilities = capabilities or Capabilities.detect()
    logger.info("[capabilities] %s", _capabilities.report())
    return _capabilities


def get_capabilities() -> Capabilities:
    """Return the process-wide bundle, detecting it lazily if startup did not."""
    if _capabilities is None:
        return init_capabilities()
    return _capabilities
