from .mime import (
    DEFAULT_MIME,
    FOLDER_MIME,
    is_download_disallowed,
    is_folder,
    is_google_app,
)
from .time import now_utc, normalize_dt, parse_rfc3339, parse_rfc3339_or_none, to_rfc3339

__all__ = [
    "FOLDER_MIME",
    "DEFAULT_MIME",
    "is_folder",
    "is_google_app",
    "is_download_disallowed",
    "now_utc",
    "parse_rfc3339",
    "parse_rfc3339_or_none",
    "to_rfc3339",
    "normalize_dt",
]
