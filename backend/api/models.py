from django.db import models


class Link(models.Model):
    """A shareable submission link for one store. Generated elsewhere, only looked up here."""

    link_id = models.CharField(max_length=64, unique=True)
    store_code = models.CharField(max_length=32, db_index=True)
    is_active = models.BooleanField(default=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "links"


class Submission(models.Model):
    """One group's accepted songs for a store.

    Current records keep their songs in `songs`, a list of
    {song_name, youtube_link, fingerprint, metadata} dicts. Older records
    only have the legacy single-song fields (song_name, youtube_link,
    fingerprint, metadata); new records mirror their first song there too.
    song_entries() is the one place that reconciles the two shapes.
    """

    store_code = models.CharField(max_length=32, db_index=True)
    link_id = models.CharField(max_length=64)
    department = models.CharField(max_length=100)
    shift = models.CharField(max_length=50)
    gender = models.CharField(max_length=20)
    members = models.JSONField(default=list)
    device_id = models.CharField(max_length=100, blank=True)

    songs = models.JSONField(default=list)

    # Legacy single-song fields
    song_name = models.CharField(max_length=300, blank=True)
    youtube_link = models.URLField(max_length=500, blank=True)
    fingerprint = models.CharField(max_length=200, blank=True)
    metadata = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "submissions"
        ordering = ["-created_at"]

    def _legacy_entry(self):
        return {
            "song_name": self.song_name or "",
            "youtube_link": self.youtube_link or "",
            "fingerprint": self.fingerprint or "",
            "metadata": self.metadata or None,
        }

    def song_entries(self) -> list:
        """All songs of this record as {song_name, youtube_link, fingerprint, metadata} dicts."""
        entries = []
        for song in self.songs or []:
            if not isinstance(song, dict):
                continue
            entries.append({
                "song_name": song.get("song_name") or "",
                "youtube_link": song.get("youtube_link") or "",
                "fingerprint": song.get("fingerprint") or "",
                "metadata": song.get("metadata") or None,
            })

        legacy = self._legacy_entry()
        has_legacy = legacy["youtube_link"] or legacy["fingerprint"] or legacy["metadata"]
        if has_legacy and legacy not in entries:
            entries.append(legacy)
        return entries

    def song_count(self) -> int:
        return len(self.song_entries())

    def to_dict(self):
        return {
            "id": self.id,
            "store_code": self.store_code,
            "link_id": self.link_id,
            "department": self.department,
            "shift": self.shift,
            "gender": self.gender,
            "members": self.members,
            "songs": self.song_entries(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
