"""Metadata helpers for asset files."""

import mimetypes
from typing import Final

_SPREADSHEET_TYPES: Final = frozenset((
    'text/csv',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.oasis.opendocument.spreadsheet',
))

_PRESENTATION_TYPES: Final = frozenset((
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'application/vnd.oasis.opendocument.presentation',
))

_DOCUMENT_TYPES: Final = frozenset((
    'text/plain',
    'text/markdown',
    'application/rtf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.oasis.opendocument.text',
))


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename extension.

    Args:
        filename: Filename or locator with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return 'application/octet-stream'
    return mime_type


def classify_file_type(mime_type: str) -> str:
    """Map a MIME type to the asset file type enumeration.

    Args:
        mime_type: MIME type (e.g., 'image/png'). Parameters such as
            '; charset=utf-8' are ignored.

    Returns:
        One of 'image', 'pdf', 'video', 'document', 'spreadsheet',
        'presentation' or 'other'.
    """
    base_type = mime_type.split(';', 1)[0].strip().lower()

    if base_type.startswith('image/'):
        return 'image'
    if base_type.startswith('video/'):
        return 'video'
    if base_type == 'application/pdf':
        return 'pdf'
    if base_type in _SPREADSHEET_TYPES:
        return 'spreadsheet'
    if base_type in _PRESENTATION_TYPES:
        return 'presentation'
    if base_type in _DOCUMENT_TYPES:
        return 'document'
    return 'other'
