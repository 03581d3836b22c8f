"""Google Drive v3 implementation of RemoteStorageService."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator, Optional

from gdrivemirror.auth import OAuthClient
from gdrivemirror.errors import InvalidArgumentError, InvalidStateError
from gdrivemirror.models import RemoteRecord, record_from_drive_file
from gdrivemirror.util.mime import FOLDER_MIME
from gdrivemirror.util.time import to_rfc3339

from .base import ChangePage, RecordPage, UploadChannel, UploadChunkResult
from .fields import CHANGE_FIELDS, FILE_FIELDS, LIST_FIELDS

logger = logging.getLogger(__name__)

FILES_URL: str = "https://www.googleapis.com/drive/v3/files"
UPLOAD_URL: str = "https://www.googleapis.com/upload/drive/v3/files"

PAGE_SIZE: int = 1000
DOWNLOAD_READ_SIZE: int = 1024 * 1024

# Resumable uploads require every non-final chunk to be a multiple of 256 KiB.
CHUNK_ALIGNMENT: int = 256 * 1024

_RANGE_RE = re.compile(r"bytes=(\d+)-(\d+)")


class GoogleDriveService:
    """
    Drive API access (no retries, no error translation).

    Notes:
        - Metadata calls go through the googleapiclient resource.
        - Resumable uploads and ranged downloads use a google-auth
          ``AuthorizedSession`` so chunks and byte ranges can be driven directly.
    """

    def __init__(
        self,
        oauth_client: OAuthClient,
        *,
        supports_all_drives: bool = True,
    ) -> None:
        self._supports_all_drives = supports_all_drives
        self._service = oauth_client.build_drive_service()
        self._http = oauth_client.authorized_session()

    @classmethod
    def from_service(
        cls,
        service: Any,
        http_session: Any = None,
        *,
        supports_all_drives: bool = True,
    ) -> "GoogleDriveService":
        """Create from a pre-built Drive resource and HTTP session (useful for tests)."""
        obj = cls.__new__(cls)
        obj._supports_all_drives = supports_all_drives
        obj._service = service
        obj._http = http_session
        return obj

    # ----------------------------
    # Listing
    # ----------------------------
    def get_change_marker(self) -> str:
        data = self._service.changes().getStartPageToken(
            **self._common_get_kwargs(),
        ).execute()
        return data.get("startPageToken")

    def get_entry(self, entry_id: str) -> Optional[RemoteRecord]:
        data = self._service.files().get(
            fileId=entry_id,
            fields=FILE_FIELDS,
            **self._common_get_kwargs(),
        ).execute()
        return record_from_drive_file(data) if data else None

    def list_entries(
        self,
        page_token: Optional[str] = None,
        *,
        query: Optional[str] = None,
    ) -> RecordPage:
        data = self._service.files().list(
            q=query or "trashed = false",
            orderBy="createdTime",
            pageSize=PAGE_SIZE,
            pageToken=page_token,
            fields=LIST_FIELDS,
            **self._common_list_kwargs(),
        ).execute()

        records = [record_from_drive_file(f) for f in data.get("files", [])]
        return RecordPage(records=records, next_page_token=data.get("nextPageToken"))

    def list_changes(self, since_token: str) -> ChangePage:
        data = self._service.changes().list(
            pageToken=since_token,
            spaces="drive",
            pageSize=PAGE_SIZE,
            includeRemoved=True,
            fields=CHANGE_FIELDS,
            **self._common_list_kwargs(),
        ).execute()

        records: list[RemoteRecord] = []
        for change in data.get("changes", []):
            change_type = change.get("changeType", "file")
            if change_type != "file":
                logger.debug(f"list_changes: skipping change of type '{change_type}'")
                continue

            file_data = change.get("file")
            if change.get("removed") or not file_data or file_data.get("trashed"):
                logger.debug(f"list_changes: file {change.get('fileId')} deleted")
                records.append(RemoteRecord.tombstone(change.get("fileId", "")))
                continue

            logger.debug(f"list_changes: file {change.get('fileId')} changed or created")
            records.append(record_from_drive_file(file_data))

        return ChangePage(
            records=records,
            next_page_token=data.get("nextPageToken"),
            new_marker=data.get("newStartPageToken"),
        )

    # ----------------------------
    # Mutations
    # ----------------------------
    def create_folder(self, parent_id: str, name: str) -> RemoteRecord:
        body = {"name": name, "mimeType": FOLDER_MIME, "parents": [parent_id]}
        data = self._service.files().create(
            body=body,
            fields=FILE_FIELDS,
            **self._common_write_kwargs(),
        ).execute()
        return record_from_drive_file(data)

    def delete_entry(self, entry_id: str) -> bool:
        self._service.files().delete(
            fileId=entry_id,
            **self._common_write_kwargs(),
        ).execute()
        return True

    def update_metadata(
        self,
        entry_id: str,
        patch: dict[str, Any],
        *,
        add_parent_id: Optional[str] = None,
        remove_parent_id: Optional[str] = None,
    ) -> RemoteRecord:
        body: dict[str, Any] = {}
        if "name" in patch:
            body["name"] = patch["name"]
            body["originalFilename"] = patch["name"]
        if "properties" in patch:
            body["properties"] = patch["properties"]
        if "modified_time" in patch:
            body["modifiedTime"] = to_rfc3339(patch["modified_time"])

        data = self._service.files().update(
            fileId=entry_id,
            body=body,
            addParents=add_parent_id,
            removeParents=remove_parent_id,
            fields=FILE_FIELDS,
            **self._common_write_kwargs(),
        ).execute()
        return record_from_drive_file(data)

    # ----------------------------
    # Transfers
    # ----------------------------
    def start_upload(
        self,
        name: str,
        parent_id: str,
        total_size: int,
        mime_type: str,
    ) -> UploadChannel:
        http = self._require_http()
        params = {"uploadType": "resumable", "fields": FILE_FIELDS}
        if self._supports_all_drives:
            params["supportsAllDrives"] = "true"

        response = http.post(
            UPLOAD_URL,
            params=params,
            data=json.dumps({"name": name, "parents": [parent_id]}),
            headers={
                "Content-Type": "application/json; charset=UTF-8",
                "X-Upload-Content-Type": mime_type,
                "X-Upload-Content-Length": str(total_size),
            },
        )
        response.raise_for_status()

        session_uri = response.headers.get("Location")
        if not session_uri:
            raise InvalidStateError(
                "Drive did not return a resumable session URI",
                details={"name": name, "parent_id": parent_id},
            )

        return UploadChannel(
            name=name,
            parent_id=parent_id,
            total_size=total_size,
            mime_type=mime_type,
            session_uri=session_uri,
        )

    def upload_chunk(self, channel: UploadChannel, data: bytes) -> UploadChunkResult:
        http = self._require_http()
        start = channel.bytes_committed
        end = start + len(data)
        is_final = end >= channel.total_size

        if not is_final and len(data) % CHUNK_ALIGNMENT:
            raise InvalidArgumentError(
                "Non-final chunks must be a multiple of 256 KiB",
                details={"chunk_size": len(data), "name": channel.name},
            )

        if data:
            content_range = f"bytes {start}-{end - 1}/{channel.total_size}"
        else:
            content_range = f"bytes */{channel.total_size}"

        response = http.put(
            channel.session_uri,
            data=data,
            headers={"Content-Length": str(len(data)), "Content-Range": content_range},
        )

        if response.status_code == 308:
            channel.bytes_committed = _committed_from_range(response.headers.get("Range"))
            return UploadChunkResult(bytes_committed=channel.bytes_committed)

        response.raise_for_status()
        channel.bytes_committed = channel.total_size
        return UploadChunkResult(
            bytes_committed=channel.bytes_committed,
            record=record_from_drive_file(response.json()),
        )

    def open_download(
        self,
        entry_id: str,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> "_ResponseBody":
        http = self._require_http()
        headers: dict[str, str] = {}
        range_value = format_range(offset, length)
        if range_value is not None:
            headers["Range"] = range_value

        params = {"alt": "media"}
        if self._supports_all_drives:
            params["supportsAllDrives"] = "true"

        response = http.get(
            f"{FILES_URL}/{entry_id}",
            params=params,
            headers=headers,
            stream=True,
        )
        try:
            response.raise_for_status()
        except Exception:
            response.close()
            raise
        return _ResponseBody(response)

    # ----------------------------
    # Internals
    # ----------------------------
    def _require_http(self) -> Any:
        if self._http is None:
            raise InvalidStateError("No authorized HTTP session available for transfers")
        return self._http

    def _common_get_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True}

    def _common_list_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True, "includeItemsFromAllDrives": True}

    def _common_write_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True}


class _ResponseBody:
    """Streams a ``requests`` response body; single pass."""

    def __init__(self, response: Any) -> None:
        self._response = response

    def __iter__(self) -> Iterator[bytes]:
        return self._response.iter_content(chunk_size=DOWNLOAD_READ_SIZE)

    def close(self) -> None:
        self._response.close()


def format_range(offset: Optional[int], length: Optional[int]) -> Optional[str]:
    """
    HTTP Range header value for ``length`` bytes starting at ``offset``.

    Byte ranges are inclusive; an offset without length reads to the end.
    """
    if offset is None and length is None:
        return None
    start = offset or 0
    if length is None:
        return f"bytes={start}-"
    return f"bytes={start}-{start + length - 1}"


def _committed_from_range(value: Optional[str]) -> int:
    if not value:
        return 0
    match = _RANGE_RE.search(value)
    if not match:
        return 0
    return int(match.group(2)) + 1
