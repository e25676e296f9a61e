"""Read side of the record store: accepted songs for a store, as AcceptedSong values."""

from api.models import Submission
from duplicate_checker import AcceptedSong
from song_matcher import SongMetadata


def accepted_songs_from(submissions) -> list:
    songs = []
    for submission in submissions:
        for entry in submission.song_entries():
            songs.append(AcceptedSong(
                url=entry["youtube_link"],
                fingerprint=entry["fingerprint"],
                metadata=SongMetadata.from_dict(entry["metadata"]),
                song_name=entry["song_name"],
                submission_id=submission.id,
            ))
    return songs


async def load_accepted_songs(store_code) -> list:
    """Snapshot of every accepted song for a store, read once per check."""
    submissions = [s async for s in Submission.objects.filter(store_code=store_code)]
    return accepted_songs_from(submissions)
