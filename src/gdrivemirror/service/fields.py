"""Field definitions for Google Drive API requests and responses."""

from __future__ import annotations

FILE_FIELDS: str = (
    "id,"
    "name,"
    "mimeType,"
    "parents,"
    "trashed,"
    "createdTime,"
    "modifiedTime,"
    "size,"
    "md5Checksum,"
    "properties"
)

LIST_FIELDS: str = f"nextPageToken,files({FILE_FIELDS})"

CHANGE_FIELDS: str = (
    "nextPageToken,newStartPageToken,"
    f"changes(changeType,removed,fileId,time,file({FILE_FIELDS}))"
)
