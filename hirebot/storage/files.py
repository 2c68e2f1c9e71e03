"""
Uploaded file handling.

Uploads are written to disk once at session creation. After that the
workflow only needs a file's size, its MIME type and its bytes as base64,
which is what StoredFile exposes.
"""
import asyncio
import base64
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Optional

from fastapi import UploadFile

from ..errors import UploadTooLargeError
from ..utils.config import MAX_UPLOAD_MB, UPLOAD_CHUNK_BYTES
from ..utils.logger import setup_logger

logger = setup_logger("file_storage")

BYTES_PER_MB = 1024 * 1024
DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES: Dict[str, str] = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    # Video formats
    ".mp4": "video/mp4",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
    ".wmv": "video/x-ms-wmv",
    ".webm": "video/webm",
    # Audio formats
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".wave": "audio/wav",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".m4a": "audio/m4a",
}

# Content types accepted per upload field
ALLOWED_UPLOAD_TYPES: Dict[str, FrozenSet[str]] = {
    "audio": frozenset({
        "audio/mpeg", "audio/mp3", "audio/wav", "audio/wave",
        "audio/x-wav", "audio/aac", "audio/ogg", "audio/webm",
        "audio/flac", "audio/x-flac", "audio/mp4", "audio/m4a",
    }),
    "video": frozenset({
        "video/mp4", "video/avi", "video/mov", "video/wmv", "video/webm",
    }),
    "cv": frozenset({
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
    }),
}

UPLOAD_FORMAT_HINTS = {
    "audio": "Please upload MP3, WAV, AAC, OGG, FLAC, or M4A files.",
    "video": "Please upload MP4, AVI, MOV, WMV, or WebM files.",
    "cv": "Please upload PDF, DOC, DOCX, or TXT files.",
}


def get_mime_type(path) -> str:
    """Map a stored filename's extension to its canonical MIME type."""
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def is_allowed_upload(field: str, content_type: str) -> bool:
    """Check an upload's declared content type against the field's allow-list."""
    return content_type in ALLOWED_UPLOAD_TYPES.get(field, frozenset())


@dataclass(frozen=True)
class StoredFile:
    """Reference to a file persisted on disk."""
    path: Path
    original_name: str
    size_bytes: int

    @property
    def size_mb(self) -> float:
        return self.size_bytes / BYTES_PER_MB

    @property
    def label(self) -> str:
        """Name used when the file is mentioned in generated text."""
        return self.path.name

    @property
    def mime_type(self) -> str:
        return get_mime_type(self.path)

    async def read_base64(self) -> str:
        """Read the file without blocking the event loop and base64 encode it."""
        data = await asyncio.to_thread(self.path.read_bytes)
        return base64.b64encode(data).decode("ascii")


async def save_upload(
    upload: UploadFile,
    field: str,
    upload_dir: Path,
    max_upload_mb: Optional[float] = None,
) -> StoredFile:
    """
    Persist an uploaded file as ``<field>-<timestamp>-<random><ext>``.

    The upload is copied in chunks, with disk writes off the event loop.

    Args:
        upload: Incoming multipart file
        field: Form field name (audio, video or cv)
        upload_dir: Target directory, created when missing
        max_upload_mb: Size ceiling. If None, uses MAX_UPLOAD_MB.

    Returns:
        StoredFile pointing at the written file

    Raises:
        UploadTooLargeError: upload exceeds the ceiling (partial file is removed)
    """
    limit_mb = max_upload_mb if max_upload_mb is not None else MAX_UPLOAD_MB
    max_bytes = int(limit_mb * BYTES_PER_MB)

    upload_dir = Path(upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    suffix = Path(upload.filename or "").suffix.lower()
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    file_path = upload_dir / f"{field}-{unique_suffix}{suffix}"

    size_bytes = 0
    f = await asyncio.to_thread(open, file_path, 'wb')
    try:
        while True:
            chunk = await upload.read(UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            size_bytes += len(chunk)
            if size_bytes > max_bytes:
                break
            await asyncio.to_thread(f.write, chunk)
    finally:
        await asyncio.to_thread(f.close)

    if size_bytes > max_bytes:
        logger.warning(f"Rejected {field} upload {upload.filename}: over the {limit_mb:g} MB limit")
        file_path.unlink(missing_ok=True)
        raise UploadTooLargeError(field, limit_mb)

    stored = StoredFile(
        path=file_path,
        original_name=upload.filename or file_path.name,
        size_bytes=size_bytes,
    )
    logger.info(f"Saved {field} upload {stored.original_name} ({stored.size_mb:.2f} MB) to {file_path}")
    return stored
