import json
import logging
import os
import tempfile

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt

from api.models import Link, Submission
from api.song_store import load_accepted_songs
from duplicate_checker import AcceptedSong, DuplicateChecker, MediaReference
from exceptions import ContentCheckError, InvalidReferenceError
from song_fingerprint import link_fingerprint
from url_downloader import extract_identifier

logger = logging.getLogger(__name__)

UPLOAD_DIR = settings.UPLOAD_DIR


# ── Helpers ───────────────────────────────────────────────────────────────────

async def _active_link(link_id):
    link = await Link.objects.filter(link_id=link_id, is_active=True).afirst()
    if link is None:
        return None
    if link.expires_at and link.expires_at < timezone.now():
        return None
    return link


def _form_data(request):
    """Request fields from a JSON body or a (multipart) form."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            raise InvalidReferenceError("Invalid JSON body")
        if not isinstance(data, dict):
            raise InvalidReferenceError("Invalid JSON body")
        return data
    return request.POST


def _json_list(value, error):
    """Accept a list or a JSON-encoded list; anything else is an input error."""
    if value in (None, ""):
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise InvalidReferenceError(error)
    if not isinstance(value, list):
        raise InvalidReferenceError(error)
    return value


def _max_length(field):
    return Submission._meta.get_field(field).max_length


def _text(data, key, max_length=None, label=None):
    """A stripped string field. Non-strings and over-long values are input errors."""
    value = data.get(key)
    if value is None:
        return ""
    label = label or key.replace("_", " ")
    if not isinstance(value, str):
        raise InvalidReferenceError(f"Invalid {label}")
    value = value.strip()
    if max_length and len(value) > max_length:
        raise InvalidReferenceError(f"{label.capitalize()} is too long (max {max_length} characters)")
    return value


def _clean_songs(songs):
    """Validate the submitted songs list into {song_name, youtube_link} dicts."""
    cleaned = []
    for song in songs:
        if not isinstance(song, dict):
            raise InvalidReferenceError("Invalid songs data")
        url = _text(song, "youtube_link", _max_length("youtube_link"), "song link")
        if not url:
            raise InvalidReferenceError("Every song needs a link")
        cleaned.append({
            "song_name": _text(song, "song_name", _max_length("song_name"), "song name"),
            "youtube_link": url,
        })
    return cleaned


def _parse_pending_links(value):
    links = _json_list(value, "Invalid pending links data")
    if not all(isinstance(link, str) for link in links):
        raise InvalidReferenceError("Invalid pending links data")
    return links


def _save_upload(upload):
    """Store an uploaded audio file in UPLOAD_DIR and return its path."""
    ext = os.path.splitext(upload.name or "")[1].lower().lstrip(".")
    allowed = getattr(settings, "ALLOWED_AUDIO_EXTENSIONS", ())
    if ext not in allowed:
        raise InvalidReferenceError("Only audio files allowed")
    if upload.size > getattr(settings, "MAX_UPLOAD_SIZE", 50 * 1024 * 1024):
        raise InvalidReferenceError("Audio file is too large")

    os.makedirs(UPLOAD_DIR, exist_ok=True)
    with tempfile.NamedTemporaryFile(dir=UPLOAD_DIR, suffix=f".{ext}", delete=False) as f:
        for chunk in upload.chunks():
            f.write(chunk)
    return f.name


def _remove(path):
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError as exc:
            logger.warning("[upload] could not remove %s: %s", path, exc)


# ── Song check ────────────────────────────────────────────────────────────────

@csrf_exempt
async def check_song(request, link_id):
    """POST /api/submissions/check-song/<link_id>/

    Checks one song (link and/or uploaded file) against the store and the
    participant's pending list.
    """
    if request.method != "POST":
        return JsonResponse({"error": "Method not allowed"}, status=405)

    link = await _active_link(link_id)
    if link is None:
        return JsonResponse({"error": "Invalid link"}, status=404)

    upload_path = None
    try:
        data = _form_data(request)
        youtube_link = _text(data, "youtube_link", _max_length("youtube_link"), "song link")
        pending_links = _parse_pending_links(data.get("pending_links"))
        upload = request.FILES.get("audio_file")
        if not upload and not youtube_link:
            raise InvalidReferenceError("Please provide a song link or upload a file")
        if upload:
            upload_path = _save_upload(upload)

        accepted = await load_accepted_songs(link.store_code)
        result = await DuplicateChecker().check_candidate(
            MediaReference(youtube_link, upload_path), accepted, pending_links,
        )
    except InvalidReferenceError as e:
        return JsonResponse({"error": str(e)}, status=400)
    except ContentCheckError:
        return JsonResponse({"error": "Server error"}, status=500)
    except Exception:
        logger.exception("[check_song] failed for link %s", link_id)
        return JsonResponse({"error": "Server error"}, status=500)
    finally:
        _remove(upload_path)

    if result.not_music:
        return JsonResponse({"error": result.error_message}, status=400)
    if not result.accepted:
        return JsonResponse(
            {"error": result.error_message, "reason": result.verdict.reason.value},
            status=409,
        )
    return JsonResponse({
        "available": True,
        "message": "Song is available!",
        "fingerprint": result.fingerprint,
    })


@csrf_exempt
async def compare_songs(request, link_id):
    """POST /api/submissions/compare-songs/<link_id>/"""
    if request.method != "POST":
        return JsonResponse({"error": "Method not allowed"}, status=405)

    link = await _active_link(link_id)
    if link is None:
        return JsonResponse({"error": "Invalid link"}, status=404)

    try:
        data = _form_data(request)
        link1 = _text(data, "link1", _max_length("youtube_link"), "first link")
        link2 = _text(data, "link2", _max_length("youtube_link"), "second link")
        result = await DuplicateChecker().compare_two_references(link1, link2)
    except InvalidReferenceError as e:
        return JsonResponse({"error": str(e)}, status=400)
    except Exception:
        logger.exception("[compare_songs] failed for link %s", link_id)
        return JsonResponse({"error": "Server error"}, status=500)
    return JsonResponse(result.to_dict())


# ── Submission ────────────────────────────────────────────────────────────────

@csrf_exempt
async def submit_songs(request, link_id):
    """POST /api/submissions/<link_id>/: store one group's batch of songs."""
    if request.method != "POST":
        return JsonResponse({"error": "Method not allowed"}, status=405)

    link = await _active_link(link_id)
    if link is None:
        return JsonResponse({"error": "Invalid or expired submission link"}, status=404)

    try:
        data = _form_data(request)
        department = _text(data, "department", _max_length("department"))
        shift = _text(data, "shift", _max_length("shift"))
        gender = _text(data, "gender", _max_length("gender"))
        device_id = _text(data, "device_id", _max_length("device_id"), "device id")
        members = _json_list(data.get("members"), "Invalid members data")
        if not all(isinstance(m, str) for m in members):
            raise InvalidReferenceError("Invalid members data")
        members = [m.strip() for m in members if m.strip()]
        songs = _clean_songs(_json_list(data.get("songs"), "Invalid songs data"))
    except InvalidReferenceError as e:
        return JsonResponse({"error": str(e)}, status=400)

    if not department or not shift or not gender:
        return JsonResponse({"error": "Department, shift and gender are required"}, status=400)
    if not members:
        return JsonResponse({"error": "At least one member name is required"}, status=400)
    if not songs:
        return JsonResponse({"error": "Please add at least one song"}, status=400)

    try:
        accepted = await load_accepted_songs(link.store_code)
        checker = DuplicateChecker()
        processed = []
        for song in songs:
            url = song["youtube_link"]
            # Earlier songs of this batch count as accepted for the later ones
            batch = [AcceptedSong(url=p["youtube_link"], fingerprint=p["fingerprint"]) for p in processed]
            verdict = checker.match_stored(url, accepted + batch)
            if verdict:
                return JsonResponse(
                    {"error": f"{verdict.message} ({url})", "reason": verdict.reason.value},
                    status=409,
                )

            metadata = await checker.resolver.resolve(url)
            processed.append({
                "song_name": song["song_name"],
                "youtube_link": url,
                "fingerprint": link_fingerprint(extract_identifier(url), url) or "",
                "metadata": metadata.to_dict() if metadata else None,
            })

        first = processed[0]
        submission = await Submission.objects.acreate(
            store_code=link.store_code,
            link_id=link.link_id,
            department=department,
            shift=shift,
            gender=gender,
            members=members,
            device_id=device_id,
            songs=processed,
            song_name=first["song_name"],
            youtube_link=first["youtube_link"],
            fingerprint=first["fingerprint"],
            metadata=first["metadata"],
        )
    except Exception:
        logger.exception("[submit_songs] failed for link %s", link_id)
        return JsonResponse({"error": "Server error"}, status=500)

    logger.info("[submit_songs] stored %d song(s) for store %s", len(processed), link.store_code)
    return JsonResponse({
        "submission": submission.to_dict(),
        "message": f"{len(processed)} song(s) submitted successfully!",
    }, status=201)
