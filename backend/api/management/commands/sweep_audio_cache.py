"""Delete cached audio clips older than the cache TTL.

Usage:
    python manage.py sweep_audio_cache                 # AUDIO_CACHE_TTL
    python manage.py sweep_audio_cache --max-age 0     # empty the cache
"""

from django.core.management.base import BaseCommand

from acoustid_service import audio_cache_dir, sweep_audio_cache


class Command(BaseCommand):
    help = "Remove downloaded song clips from the audio cache."

    def add_arguments(self, parser):
        parser.add_argument(
            "--max-age",
            type=int,
            default=None,
            help="Age in seconds above which a clip is removed (default: AUDIO_CACHE_TTL).",
        )

    def handle(self, *args, **options):
        cache_dir = audio_cache_dir()
        removed = sweep_audio_cache(cache_dir, options["max_age"])
        self.stdout.write(self.style.SUCCESS(f"Removed {removed} clip(s) from {cache_dir}"))
