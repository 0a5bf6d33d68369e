from .classifier import (
    ARCHIVE_EXTENSIONS,
    AUDIO_EXTENSIONS,
    NOTATION_EXTENSIONS,
    appears_to_be_bundle,
    is_archive_extension,
)

__all__ = [
    "ARCHIVE_EXTENSIONS",
    "AUDIO_EXTENSIONS",
    "NOTATION_EXTENSIONS",
    "appears_to_be_bundle",
    "is_archive_extension",
]
