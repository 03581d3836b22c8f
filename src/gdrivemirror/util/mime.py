from __future__ import annotations

FOLDER_MIME: str = "application/vnd.google-apps.folder"
DEFAULT_MIME: str = "application/octet-stream"

GOOGLE_APP_PREFIX: str = "application/vnd.google-apps."


def is_folder(mime_type: str | None) -> bool:
    return mime_type == FOLDER_MIME


def is_google_app(mime_type: str | None) -> bool:
    """Return True for Google 'apps' types (Docs, Sheets, shortcuts, folders...)."""
    if not mime_type:
        return False
    return mime_type.startswith(GOOGLE_APP_PREFIX)


def is_download_disallowed(mime_type: str | None) -> bool:
    """
    Folders and Google-apps documents have no binary content to download.

    Exporting Docs/Sheets to another format is out of scope.
    """
    return is_folder(mime_type) or is_google_app(mime_type)
