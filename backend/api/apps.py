import atexit
import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class ApiConfig(AppConfig):
    name = "api"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        from acoustid_service import AudioCacheSweeper
        from capabilities import init_capabilities

        init_capabilities()

        if getattr(settings, "AUDIO_CACHE_SWEEP_ENABLED", True):
            sweeper = AudioCacheSweeper()
            sweeper.start()
            atexit.register(sweeper.stop)
