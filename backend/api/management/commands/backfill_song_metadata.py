"""Resolve and store song metadata for accepted songs that have none.

Records created before metadata matching existed only carry a link; without
metadata the title/description comparison cannot see them.

Usage:
    python manage.py backfill_song_metadata            # fill in missing metadata
    python manage.py backfill_song_metadata --force    # re-resolve every song
    python manage.py backfill_song_metadata --dry-run  # show what would change
"""

import asyncio

from django.core.management.base import BaseCommand

from api.models import Submission
from metadata_service import MetadataResolver


class Command(BaseCommand):
    help = "Resolve SongMetadata for accepted songs (songs list and legacy fields) that are missing it."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Resolve and report without saving anything.",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Re-resolve songs that already have metadata.",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        force = options["force"]
        resolver = MetadataResolver()

        updated = failed = 0
        for submission in Submission.objects.all().order_by("id"):
            changed = False

            for song in submission.songs or []:
                if not isinstance(song, dict) or not song.get("youtube_link"):
                    continue
                if song.get("metadata") and not force:
                    continue
                metadata = asyncio.run(resolver.resolve(song["youtube_link"]))
                if metadata is None:
                    failed += 1
                    self.stdout.write(self.style.WARNING(f"  #{submission.id} {song['youtube_link']}: no metadata"))
                    continue
                song["metadata"] = metadata.to_dict()
                changed = True
                self.stdout.write(f"  #{submission.id} {song['youtube_link']}: {metadata.normalized_title}")

            if submission.youtube_link and (force or not submission.metadata):
                metadata = asyncio.run(resolver.resolve(submission.youtube_link))
                if metadata is None:
                    failed += 1
                else:
                    submission.metadata = metadata.to_dict()
                    changed = True

            if changed:
                updated += 1
                if not dry_run:
                    submission.save(update_fields=["songs", "metadata", "updated_at"])

        if dry_run:
            self.stdout.write(self.style.NOTICE("\nDry run — nothing saved."))
        self.stdout.write(self.style.SUCCESS(f"\nDone. Submissions updated: {updated}"))
        if failed:
            self.stdout.write(f"  Songs without metadata : {failed}")
