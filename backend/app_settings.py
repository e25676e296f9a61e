"""Lazy access to Django settings for the service modules.

The matcher, resolver and fingerprint modules are importable (and testable)
without a configured Django project; in that case every lookup returns the
supplied default.
"""


def setting(name: str, default=None):
    """Return settings.<name> when Django is configured, else `default`."""
    from django.conf import settings

    if not settings.configured:
        return default
    return getattr(settings, name, default)
