# =============================================================================================
# SESSION_API/SERVICES/UPLOADS.PY - UPLOAD TEMP STORAGE AND THE UPLOAD GATE
# =============================================================================================
# The multipart body is streamed to UPLOAD_TEMP_DIR under a random name first.
# validate_stored_upload() then either accepts the file or deletes it:
# - smaller than UPLOAD_MIN_SIZE bytes → rejected
# - sniffed MIME type missing or outside UPLOAD_ALLOWED_MIME_TYPES → rejected
#
# The MIME type is sniffed from the file's leading bytes with filetype; the
# client-supplied Content-Type and file extension are not trusted.
# =============================================================================================

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

import filetype
from fastapi import UploadFile

from session_api.core.config import get_settings
from session_api.core.errors import BadRequestError

logger = logging.getLogger(__name__)

settings = get_settings()

CHUNK_SIZE = 1024 * 1024


@dataclass
class StoredUpload:
    path: Path
    original_name: str
    size: int


def _temp_dir() -> Path:
    directory = Path(settings.UPLOAD_TEMP_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


async def save_to_temp(upload: UploadFile) -> StoredUpload:
    """Stream an UploadFile to temp storage under a random name, keeping its extension."""
    original_name = upload.filename or ""
    suffix = Path(original_name).suffix.lower()[:16]
    dest = _temp_dir() / f"{uuid.uuid4().hex}{suffix}"

    size = 0
    try:
        with dest.open("wb") as fh:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                fh.write(chunk)
    except Exception:
        dest.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    return StoredUpload(path=dest, original_name=original_name, size=size)


def sniff_mime_type(path: Path) -> str | None:
    return filetype.guess_mime(str(path))


def public_file_name(stored_name: str) -> str:
    if settings.UPLOAD_PATH:
        return f"/{settings.UPLOAD_PATH.strip('/')}/{stored_name}"
    return f"/{stored_name}"


def validate_stored_upload(stored: StoredUpload) -> str:
    """
    Accept or reject a file already in temp storage.

    Returns:
        The public fileName for an accepted file.

    Raises:
        BadRequestError: file too small or of a disallowed type. The temp file
                         has been deleted when this is raised.
    """
    if stored.size < settings.UPLOAD_MIN_SIZE:
        stored.path.unlink(missing_ok=True)
        logger.warning("Upload %r rejected: %d bytes", stored.original_name, stored.size)
        raise BadRequestError("File is too small")

    mime_type = sniff_mime_type(stored.path)
    if not mime_type or mime_type not in settings.UPLOAD_ALLOWED_MIME_TYPES:
        stored.path.unlink(missing_ok=True)
        logger.warning("Upload %r rejected: type %s", stored.original_name, mime_type)
        raise BadRequestError("Unsupported file format")

    return public_file_name(stored.path.name)
