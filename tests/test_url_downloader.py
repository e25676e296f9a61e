"""Tests for link parsing and the yt-dlp wrappers (no network)."""

from unittest.mock import patch

import pytest

import url_downloader
from url_downloader import (
    PlatformIdentifier,
    clip_path,
    detect_platform,
    download_audio_clip,
    extract_identifier,
    extract_video_id,
    fetch_video_details,
)


@pytest.mark.parametrize("url", [
    "https://www.youtube.com/watch?v=BddP6PYo2gs",
    "https://www.youtube.com/watch?v=BddP6PYo2gs&list=PL1&t=30",
    "https://youtu.be/BddP6PYo2gs",
    "https://youtu.be/BddP6PYo2gs?si=share",
    "https://www.youtube.com/embed/BddP6PYo2gs",
    "https://www.youtube.com/v/BddP6PYo2gs",
    "https://www.youtube.com/shorts/BddP6PYo2gs",
    "https://music.youtube.com/watch?v=BddP6PYo2gs",
    "https://m.youtube.com/watch?v=BddP6PYo2gs&t=30",
    "https://www.youtube.com/watch?feature=share&v=BddP6PYo2gs",
    "https://music.youtube.com/watch?si=abc&v=BddP6PYo2gs&list=RDAMVM",
])
def test_youtube_forms_share_one_identifier(url):
    assert extract_identifier(url) == PlatformIdentifier("youtube", "BddP6PYo2gs")
    assert extract_video_id(url) == "BddP6PYo2gs"


def test_watch_id_comes_from_the_v_parameter():
    assert extract_video_id("https://www.youtube.com/watch?v=abc123&xv=def456") == "abc123"
    assert extract_video_id("https://www.youtube.com/watch?xv=def456&v=abc123") == "abc123"


@pytest.mark.parametrize("url", [
    "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC",
    "https://www.jiosaavn.com/song/kesariya/abc",
    "https://example.com/watch?v=abc",
    "",
    None,
])
def test_other_links_have_no_identifier(url):
    assert extract_identifier(url) is None


def test_detect_platform():
    assert detect_platform("https://youtu.be/x") == "youtube"
    assert detect_platform("https://music.youtube.com/watch?v=x") == "youtube"
    assert detect_platform("https://open.spotify.com/track/x") == "spotify"
    assert detect_platform("https://www.jiosaavn.com/song/x") == "jiosaavn"
    assert detect_platform("https://soundcloud.com/a/b") == "soundcloud"
    assert detect_platform("https://example.com") == "unknown"


class TestFetchVideoDetails:
    def test_non_youtube_link_skips_lookup(self):
        assert fetch_video_details("https://open.spotify.com/track/x") is None

    def test_extract_failure_is_none(self):
        with patch("yt_dlp.YoutubeDL.YoutubeDL.extract_info", side_effect=Exception("HTTP 403")):
            assert fetch_video_details("https://youtu.be/abc") is None

    def test_shapes_info(self):
        info = {"title": "Kesariya", "tags": ["arijit"], "duration": 268, "categories": ["Music"]}
        with patch("yt_dlp.YoutubeDL.YoutubeDL.extract_info", return_value=info):
            details = fetch_video_details("https://youtu.be/abc")
        assert details["title"] == "Kesariya"
        assert details["description"] == ""
        assert details["categories"] == ["Music"]


class TestDownloadAudioClip:
    def test_cached_clip_is_reused(self, tmp_path):
        cached = tmp_path / "abc123.mp3"
        cached.write_bytes(b"clip")
        with patch("url_downloader.subprocess.run") as run:
            assert download_audio_clip("https://youtu.be/abc123", str(tmp_path)) == str(cached)
        run.assert_not_called()

    def test_non_youtube_link(self, tmp_path):
        assert download_audio_clip("https://open.spotify.com/track/x", str(tmp_path)) is None

    def test_missing_yt_dlp(self, tmp_path):
        with patch("url_downloader.shutil.which", return_value=None):
            assert download_audio_clip("https://youtu.be/abc123", str(tmp_path)) is None

    def test_falls_back_to_full_download(self, tmp_path):
        calls = []

        def fake_run(cmd, timeout):
            calls.append(cmd)
            if "--download-sections" not in cmd:
                (tmp_path / "abc123.mp3").write_bytes(b"full")
            return True

        with patch("url_downloader.shutil.which", return_value="/usr/bin/yt-dlp"), \
             patch("url_downloader.find_ffmpeg_dir", return_value=None), \
             patch.object(url_downloader, "_run_yt_dlp", side_effect=fake_run):
            path = download_audio_clip("https://youtu.be/abc123", str(tmp_path), clip_seconds=30)

        assert path == clip_path(str(tmp_path), "abc123")
        assert "*0-30" in calls[0]
        assert "--download-sections" not in calls[1]
