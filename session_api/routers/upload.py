# =============================================================================================
# SESSION_API/ROUTERS/UPLOAD.PY - FILE UPLOAD ENDPOINT
# =============================================================================================
# POST /upload (multipart form, field "file"), bearer access token required.
#
# FLOW:
# 1. Stream the file to temp storage (services/uploads.save_to_temp)
# 2. Size gate: fewer than UPLOAD_MIN_SIZE bytes → delete, 400
# 3. Type gate: sniffed MIME absent or not allowed → delete, 400
# 4. 201 {fileName, originalName}
# =============================================================================================

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status

from session_api.core.deps import Identity, get_current_identity
from session_api.core.errors import BadRequestError
from session_api.schemas.upload import UploadOut
from session_api.services.uploads import save_to_temp, validate_stored_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Upload"])


@router.post("/upload", response_model=UploadOut, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile | None = File(None),
    identity: Identity = Depends(get_current_identity),
):
    """
    Accept one file if it passes the size and type gates.

    REQUEST:
        POST /upload
        Authorization: Bearer eyJhbGci...
        Content-Type: multipart/form-data

        file=<binary data>

    RESPONSE (201 Created):
        {
            "fileName": "/uploads/3f2c9a0e5b7d4c1e9a8f6b2d0c4e1a7f.png",
            "originalName": "photo.png"
        }

    ERRORS:
        400 Bad Request: no file, file too small, unsupported format
        401 Unauthorized: missing or invalid access token
    """
    if file is None:
        raise BadRequestError("File was not uploaded")

    stored = await save_to_temp(file)
    file_name = validate_stored_upload(stored)

    logger.info("User %s uploaded %s (%d bytes)", identity.user_id, file_name, stored.size)
    return UploadOut(file_name=file_name, original_name=stored.original_name)
