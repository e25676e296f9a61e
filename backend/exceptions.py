"""Error taxonomy for the song check workflow."""


class SongCheckError(Exception):
    """Base exception for song checks."""
    pass


class InvalidReferenceError(SongCheckError):
    """Missing or malformed input: no link and no file, bad pending list, bad upload."""
    pass


class ContentCheckError(SongCheckError):
    """The not-a-song pre-filter itself failed; the check is indeterminate."""
    pass
