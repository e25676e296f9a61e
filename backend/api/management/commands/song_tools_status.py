from django.core.management.base import BaseCommand

from capabilities import Capabilities
from ffmpeg_utils import ffmpeg_install_hint, find_ffmpeg


class Command(BaseCommand):
    help = "Show which optional song-check tools (oEmbed, yt-dlp, ffmpeg, fpcalc) are available."

    def handle(self, *args, **options):
        capabilities = Capabilities.detect()
        for name, available in capabilities.report().items():
            color = self.style.SUCCESS if available else self.style.WARNING
            self.stdout.write(f"  {name:<20} {color('yes' if available else 'no')}")

        state = "enabled" if capabilities.audio_pipeline else "disabled"
        self.stdout.write(f"\nAudio fingerprint matching: {state}")
        if find_ffmpeg() is None:
            self.stdout.write(self.style.NOTICE(f"ffmpeg not found, install with: {ffmpeg_install_hint()}"))
