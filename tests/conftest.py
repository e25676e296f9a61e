"""Test configuration and fixtures.

Provides reusable fixtures for:
- A capability bundle with every external tool missing (no network, no yt-dlp)
- Capability bundles with selected tools switched on
- YouTube links and accepted-song snapshots
- Submission links in the test database
"""

import pytest

from capabilities import Capabilities, StaticCapability, init_capabilities
from duplicate_checker import AcceptedSong
from song_matcher import metadata_from_title


@pytest.fixture(autouse=True)
def no_tools():
    """Every test starts with all external tools unavailable."""
    return init_capabilities(Capabilities.none())


@pytest.fixture
def title_lookup_caps():
    """Only the oEmbed title lookup is available."""
    return Capabilities(title_lookup=StaticCapability("oembed", True))


@pytest.fixture
def details_caps():
    """Only the yt_dlp details lookup is available."""
    return Capabilities(video_details=StaticCapability("yt_dlp", True))


@pytest.fixture
def watch_url():
    return "https://www.youtube.com/watch?v=BddP6PYo2gs"


@pytest.fixture
def short_url():
    return "https://youtu.be/BddP6PYo2gs"


@pytest.fixture
def accepted_song(watch_url):
    return AcceptedSong(
        url=watch_url,
        fingerprint="yt:BddP6PYo2gs",
        metadata=metadata_from_title("Kesariya - Arijit Singh | Brahmastra"),
        song_name="Kesariya",
        submission_id=1,
    )


@pytest.fixture
def link(db):
    from api.models import Link

    return Link.objects.create(link_id="store42-spring", store_code="S42")
