import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

DEBUG = os.environ.get("DEBUG", "1") == "1"

ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "corsheaders",
    "api.apps.ApiConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"

ASGI_APPLICATION = "config.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("DB_NAME", "songcheck"),
        "USER": os.environ.get("DB_USER", "songcheck"),
        "PASSWORD": os.environ.get("DB_PASSWORD", ""),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", "5432"),
    }
}

# CORS – allow the participant form's dev server
CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "https://localhost:5173",
]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True

# Media / upload directories
UPLOAD_DIR = BASE_DIR / "uploads"             # uploaded audio, removed after each check
AUDIO_CACHE_DIR = BASE_DIR / "audio_cache"    # 30 s clips keyed by video id

ALLOWED_AUDIO_EXTENSIONS = ("mp3", "wav", "m4a", "ogg", "flac", "aac")
MAX_UPLOAD_SIZE = 50 * 1024 * 1024

# ── Song check tuning ─────────────────────────────────────────────────────────

# Metadata lookups
OEMBED_ENABLED = True
OEMBED_URL = "https://www.youtube.com/oembed"
OEMBED_TIMEOUT = 5
VIDEO_DETAILS_TIMEOUT = 30

# Audio fingerprint pipeline (yt-dlp + fpcalc)
AUDIO_CLIP_SECONDS = 30
AUDIO_DOWNLOAD_TIMEOUT = 60
AUDIO_FULL_DOWNLOAD_TIMEOUT = 120
FINGERPRINT_TIMEOUT = 30

# Clip cache sweep (daemon thread started in api.apps)
AUDIO_CACHE_TTL = 3600
AUDIO_CACHE_SWEEP_INTERVAL = 3600
AUDIO_CACHE_SWEEP_ENABLED = True

# Song-name matching
WORD_OVERLAP_THRESHOLD = 0.5
MIN_SHARED_TAGS = 3

# Not-a-song screen: use yt-dlp category/duration when available
CONTENT_CHECK_USE_DETAILS = True
MAX_SONG_DURATION = 900

# ── Logging ───────────────────────────────────────────────────────────────────

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}

# ── Private setting defaults (overridden by settings_private.py) ──────────────

SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-in-production-abc123xyz")

# Load local private overrides — copy settings_private.example.py to
# settings_private.py and fill in your values (file is gitignored)
try:
    from config.settings_private import *  # noqa: F401,F403
except ImportError:
    pass
