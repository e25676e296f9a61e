"""HTTP tests for the song check, comparison and submission endpoints.

Every external tool is unavailable (see conftest.no_tools), so only the
link/fingerprint stages can flag duplicates here.
"""

import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from api.models import Link, Submission
from metadata_service import ContentCheck
from song_fingerprint import make_fingerprint, url_fingerprint

KESARIYA = "https://www.youtube.com/watch?v=BddP6PYo2gs"
KESARIYA_SHORT = "https://youtu.be/BddP6PYo2gs"
ZAALIMA = "https://www.youtube.com/watch?v=VTL0Y3GUmBk"

pytestmark = pytest.mark.django_db


def _store_song(store_code, url, fingerprint):
    return Submission.objects.create(
        store_code=store_code, link_id="store42-spring", department="Sales", shift="A",
        gender="F", members=["Asha"],
        songs=[{"song_name": "", "youtube_link": url, "fingerprint": fingerprint, "metadata": None}],
    )


def _post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


class TestCheckSong:
    url = "/api/submissions/check-song/store42-spring/"

    def test_available(self, client, link):
        resp = client.post(self.url, {"youtube_link": KESARIYA})
        assert resp.status_code == 200
        assert resp.json() == {"available": True, "message": "Song is available!", "fingerprint": "yt:BddP6PYo2gs"}

    def test_duplicate_in_store(self, client, link):
        _store_song("S42", KESARIYA, "yt:BddP6PYo2gs")
        resp = client.post(self.url, {"youtube_link": KESARIYA_SHORT})
        assert resp.status_code == 409
        assert resp.json()["reason"] == "same-platform-id"

    def test_other_store_does_not_count(self, client, link):
        _store_song("S99", KESARIYA, "yt:BddP6PYo2gs")
        assert client.post(self.url, {"youtube_link": KESARIYA}).status_code == 200

    def test_duplicate_in_pending_list(self, client, link):
        resp = client.post(self.url, {"youtube_link": KESARIYA_SHORT, "pending_links": json.dumps([KESARIYA])})
        assert resp.status_code == 409
        assert resp.json()["error"] == "This is the same YouTube video as one you already added."

    def test_json_body(self, client, link):
        resp = _post_json(client, self.url, {"youtube_link": KESARIYA, "pending_links": [KESARIYA]})
        assert resp.status_code == 409
        assert resp.json()["reason"] == "exact-url"

    def test_malformed_pending_list(self, client, link):
        resp = client.post(self.url, {"youtube_link": KESARIYA, "pending_links": "not json"})
        assert resp.status_code == 400

    def test_nothing_to_check(self, client, link):
        resp = client.post(self.url, {"youtube_link": "  "})
        assert resp.status_code == 400

    @pytest.mark.parametrize("youtube_link", [12345, ["https://youtu.be/BddP6PYo2gs"], {"v": "BddP6PYo2gs"}])
    def test_non_text_link(self, client, link, youtube_link):
        resp = _post_json(client, self.url, {"youtube_link": youtube_link})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid song link"}

    def test_link_too_long(self, client, link):
        resp = _post_json(client, self.url, {"youtube_link": KESARIYA + "&t=" + "1" * 500})
        assert resp.status_code == 400
        assert "too long" in resp.json()["error"]

    def test_not_a_song(self, client, link):
        classify = AsyncMock(return_value=ContentCheck(False, "The title looks like a podcast, not a song"))
        with patch("metadata_service.MetadataResolver.classify", classify):
            resp = client.post(self.url, {"youtube_link": KESARIYA})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("This doesn't appear to be a song.")

    def test_content_screen_failure(self, client, link):
        with patch("metadata_service.MetadataResolver.classify", AsyncMock(side_effect=RuntimeError("boom"))):
            resp = client.post(self.url, {"youtube_link": KESARIYA})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Server error"}

    def test_unknown_link(self, client, db):
        resp = client.post("/api/submissions/check-song/nope/", {"youtube_link": KESARIYA})
        assert resp.status_code == 404

    def test_expired_link(self, client, db):
        Link.objects.create(link_id="old", store_code="S42", expires_at=timezone.now() - timedelta(days=1))
        resp = client.post("/api/submissions/check-song/old/", {"youtube_link": KESARIYA})
        assert resp.status_code == 404

    def test_get_not_allowed(self, client, link):
        assert client.get(self.url).status_code == 405


class TestCheckSongUpload:
    url = "/api/submissions/check-song/store42-spring/"

    def test_upload_fingerprint_is_returned_and_file_removed(self, client, link, tmp_path):
        upload = SimpleUploadedFile("song.mp3", b"ID3 uploaded bytes", content_type="audio/mpeg")
        with patch("api.views.UPLOAD_DIR", str(tmp_path)):
            resp = client.post(self.url, {"audio_file": upload})
        assert resp.status_code == 200
        assert resp.json()["fingerprint"].startswith("file:")
        assert list(tmp_path.iterdir()) == []

    def test_same_upload_twice(self, client, link, tmp_path):
        content = b"ID3 uploaded bytes"
        with patch("api.views.UPLOAD_DIR", str(tmp_path)):
            first = client.post(self.url, {"audio_file": SimpleUploadedFile("a.mp3", content)})
            _store_song("S42", "", first.json()["fingerprint"])
            second = client.post(self.url, {"audio_file": SimpleUploadedFile("b.mp3", content)})
        assert second.status_code == 409
        assert second.json()["reason"] == "same-fingerprint"

    def test_rejects_non_audio(self, client, link, tmp_path):
        with patch("api.views.UPLOAD_DIR", str(tmp_path)):
            resp = client.post(self.url, {"audio_file": SimpleUploadedFile("notes.txt", b"hello")})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Only audio files allowed"

    def test_rejects_large_upload(self, client, link, tmp_path, settings):
        settings.MAX_UPLOAD_SIZE = 10
        with patch("api.views.UPLOAD_DIR", str(tmp_path)):
            resp = client.post(self.url, {"audio_file": SimpleUploadedFile("a.mp3", b"x" * 100)})
        assert resp.status_code == 400


class TestCompareSongs:
    url = "/api/submissions/compare-songs/store42-spring/"

    def test_same_video(self, client, link):
        resp = client.post(self.url, {"link1": KESARIYA, "link2": KESARIYA_SHORT})
        assert resp.status_code == 200
        body = resp.json()
        assert body["isSame"] is True
        assert body["similarity"] == 100
        assert body["reason"] == "same_video"

    def test_different(self, client, link):
        body = _post_json(client, self.url, {"link1": KESARIYA, "link2": ZAALIMA}).json()
        assert body["isSame"] is False
        assert body["similarity"] == 0
        assert body["song1"] == "YouTube: BddP6PYo2gs"

    def test_missing_link(self, client, link):
        assert client.post(self.url, {"link1": KESARIYA}).status_code == 400

    @pytest.mark.parametrize("payload", [
        {"link1": 1, "link2": 2},
        {"link1": KESARIYA, "link2": [KESARIYA_SHORT]},
        {"link1": KESARIYA, "link2": KESARIYA_SHORT + "&x=" + "y" * 500},
    ])
    def test_malformed_links(self, client, link, payload):
        resp = _post_json(client, self.url, payload)
        assert resp.status_code == 400
        assert "error" in resp.json()


class TestSubmitSongs:
    url = "/api/submissions/store42-spring/"

    def _payload(self, *links, **overrides):
        payload = {
            "department": "Sales",
            "shift": "Morning",
            "gender": "Mixed",
            "members": ["Asha", "Ravi"],
            "device_id": "device-1",
            "songs": [{"song_name": f"Song {i}", "youtube_link": url} for i, url in enumerate(links)],
        }
        payload.update(overrides)
        return payload

    def test_stores_batch(self, client, link):
        resp = _post_json(client, self.url, self._payload(KESARIYA, ZAALIMA))
        assert resp.status_code == 201

        submission = Submission.objects.get()
        assert submission.store_code == "S42"
        assert [s["fingerprint"] for s in submission.songs] == ["yt:BddP6PYo2gs", "yt:VTL0Y3GUmBk"]
        assert submission.youtube_link == KESARIYA
        assert submission.fingerprint == make_fingerprint("yt", "BddP6PYo2gs")
        assert resp.json()["submission"]["id"] == submission.id

    def test_form_encoded(self, client, link):
        payload = self._payload(KESARIYA)
        payload["members"] = json.dumps(payload["members"])
        payload["songs"] = json.dumps(payload["songs"])
        assert client.post(self.url, payload).status_code == 201

    def test_duplicate_within_batch(self, client, link):
        resp = _post_json(client, self.url, self._payload(KESARIYA, KESARIYA_SHORT))
        assert resp.status_code == 409
        assert resp.json()["reason"] == "same-platform-id"
        assert not Submission.objects.exists()

    def test_duplicate_against_store(self, client, link):
        _store_song("S42", ZAALIMA, "yt:VTL0Y3GUmBk")
        resp = _post_json(client, self.url, self._payload(KESARIYA, ZAALIMA))
        assert resp.status_code == 409
        assert Submission.objects.count() == 1

    @pytest.mark.parametrize("overrides", [
        {"department": ""},
        {"members": []},
        {"members": "not json"},
        {"songs": []},
        {"songs": [{"song_name": "No link"}]},
        {"department": 7},
        {"department": "D" * 101},
        {"shift": ["Morning"]},
        {"device_id": "x" * 101},
        {"members": ["Asha", 3]},
        {"songs": [KESARIYA]},
        {"songs": [{"song_name": "Tum Hi Ho", "youtube_link": 12345}]},
        {"songs": [{"song_name": 5, "youtube_link": KESARIYA}]},
        {"songs": [{"song_name": "S" * 301, "youtube_link": KESARIYA}]},
        {"songs": [{"song_name": "Long", "youtube_link": KESARIYA + "&t=" + "1" * 500}]},
    ])
    def test_validation(self, client, link, overrides):
        resp = _post_json(client, self.url, self._payload(KESARIYA, **overrides))
        assert resp.status_code == 400
        assert not Submission.objects.exists()

    def test_link_without_video_id_stores_url_hash(self, client, link):
        spotify = "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"
        resp = _post_json(client, self.url, self._payload(KESARIYA, spotify))
        assert resp.status_code == 201
        fingerprints = [s["fingerprint"] for s in Submission.objects.get().songs]
        assert fingerprints == ["yt:BddP6PYo2gs", url_fingerprint(spotify)]

    def test_unknown_link(self, client, db):
        resp = _post_json(client, "/api/submissions/missing/", self._payload(KESARIYA))
        assert resp.status_code == 404
