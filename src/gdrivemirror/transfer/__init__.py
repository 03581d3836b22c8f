"""Transfer exports for gdrivemirror."""

from __future__ import annotations

from .download import ChunkedDownloadStream, validate_downloadable
from .upload import ChunkedUploadSession, CompletionCallback, ProgressCallback

__all__ = [
    "ChunkedUploadSession",
    "ChunkedDownloadStream",
    "CompletionCallback",
    "ProgressCallback",
    "validate_downloadable",
]
