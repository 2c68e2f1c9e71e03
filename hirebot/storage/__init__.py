"""
Upload persistence and MIME type lookup.
"""
from .files import (
    StoredFile,
    get_mime_type,
    is_allowed_upload,
    save_upload,
    BYTES_PER_MB,
    UPLOAD_FORMAT_HINTS,
)

__all__ = [
    'StoredFile',
    'get_mime_type',
    'is_allowed_upload',
    'save_upload',
    'BYTES_PER_MB',
    'UPLOAD_FORMAT_HINTS',
]
