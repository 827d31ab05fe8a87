"""Upload validation: extension allow-list, MIME match, size and image sniffing."""

import io
from pathlib import PurePath
from typing import Dict, List, Optional

from PIL import Image

from ..errors import BadRequestError

ALLOWED_FILE_TYPES: Dict[str, List[str]] = {
    # images
    ".jpg": ["image/jpeg"],
    ".jpeg": ["image/jpeg"],
    ".png": ["image/png"],
    ".gif": ["image/gif"],
    ".webp": ["image/webp"],
    ".svg": ["image/svg+xml"],
    # video
    ".mp4": ["video/mp4"],
    ".avi": ["video/x-msvideo"],
    ".mov": ["video/quicktime"],
    ".wmv": ["video/x-ms-wmv"],
    ".webm": ["video/webm"],
    # documents
    ".pdf": ["application/pdf"],
    ".doc": ["application/msword"],
    ".docx": ["application/vnd.openxmlformats-officedocument.wordprocessingml.document"],
    ".xls": ["application/vnd.ms-excel"],
    ".xlsx": ["application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"],
    ".ppt": ["application/vnd.ms-powerpoint"],
    ".pptx": ["application/vnd.openxmlformats-officedocument.presentationml.presentation"],
    ".txt": ["text/plain"],
    # audio
    ".mp3": ["audio/mpeg"],
    ".wav": ["audio/wav"],
    ".ogg": ["audio/ogg"],
    # archives
    ".zip": ["application/zip"],
    ".rar": ["application/vnd.rar"],
    ".7z": ["application/x-7z-compressed"],
}

# formats Pillow can open; svg is text and is not sniffed
RASTER_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


def validate_filename(filename: Optional[str]) -> str:
    if not filename or len(filename) > 200:
        raise BadRequestError("Invalid filename")
    if "/" in filename or "\\" in filename:
        raise BadRequestError("Invalid filename path")
    return filename


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


def validate_upload(filename: Optional[str], content_type: Optional[str], payload: bytes, max_bytes: int) -> str:
    """Check an uploaded file and return its normalized extension.

    Raises `BadRequestError` when the extension is not allowed, the
    declared MIME type does not belong to the extension, the payload is
    empty or too large, or a raster image fails to decode.
    """
    filename = validate_filename(filename)
    ext = file_extension(filename)
    allowed = ALLOWED_FILE_TYPES.get(ext)
    if allowed is None:
        raise BadRequestError(f"File extension {ext or '(none)'} is not allowed")
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime not in allowed:
        raise BadRequestError(f"File MIME type {mime or '(none)'} does not match extension {ext}")
    if not payload:
        raise BadRequestError("Uploaded file is empty")
    if len(payload) > max_bytes:
        raise BadRequestError(f"File exceeds the maximum size of {max_bytes} bytes")
    if ext in RASTER_EXTENSIONS:
        try:
            Image.open(io.BytesIO(payload)).verify()
        except Exception:
            raise BadRequestError("Uploaded file is not a valid image")
    return ext
