# ── Private / local settings — EXAMPLE ────────────────────────────────────────
# Copy this file to settings_private.py and fill in your values.
# settings_private.py is gitignored and must never be committed.

# Django
SECRET_KEY = "replace-with-a-long-random-string"
DEBUG = False
ALLOWED_HOSTS = ["songs.example.com"]

# PostgreSQL database
# Create with:
#   createdb songcheck
#   createuser songcheck
#   psql -c "ALTER USER songcheck WITH PASSWORD 'yourpassword';"
#   psql -c "GRANT ALL PRIVILEGES ON DATABASE songcheck TO songcheck;"
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": "songcheck",
        "USER": "songcheck",
        "PASSWORD": "yourpassword",
        "HOST": "localhost",
        "PORT": "5432",
    }
}

# Where the participant form is served from
CORS_ALLOWED_ORIGINS = ["https://songs.example.com"]

# Disable the oEmbed fast path on hosts without outbound access
# OEMBED_ENABLED = False

# Stricter word-overlap matching
# WORD_OVERLAP_THRESHOLD = 0.6
