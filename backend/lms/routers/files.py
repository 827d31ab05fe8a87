"""File upload endpoints backed by the configured object storage."""

import io
import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from .. import models
from ..auth import get_current_user
from ..config import Settings
from ..deps import get_settings, get_storage
from ..errors import BadRequestError, NotFoundError
from ..policy import require_role
from ..responses import ok
from ..utils.storage import ObjectStorage
from ..utils.uploads import ALLOWED_FILE_TYPES, validate_upload

logger = logging.getLogger("lms.api.files")

router = APIRouter(prefix="/api/files", tags=["files"])

MAX_FILES_PER_REQUEST = 10


def _store(file: UploadFile, storage: ObjectStorage, settings: Settings) -> dict:
    # read one byte past the limit so oversized files are caught without loading more
    payload = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    ext = validate_upload(file.filename, file.content_type, payload, settings.MAX_UPLOAD_BYTES)
    stored = storage.save(io.BytesIO(payload), file.filename)
    logger.info("stored upload %s (%d bytes)", stored.public_id, stored.size)
    return {
        "file_url": stored.url,
        "file_type": file.content_type,
        "file_name": file.filename,
        "file_size": stored.size,
        "file_extension": ext,
        "public_id": stored.public_id,
    }


@router.get("/allowed-types")
def allowed_types():
    data = {"allowed_extensions": sorted(ALLOWED_FILE_TYPES), "allowed_file_types": ALLOWED_FILE_TYPES}
    return ok(data, "Allowed file types retrieved successfully")


@router.post("/upload", status_code=201)
def upload_file(
    file: UploadFile = File(...),
    user: models.User = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return ok(_store(file, storage, settings), "File uploaded successfully")


@router.post("/upload-multiple", status_code=201)
def upload_files(
    files: List[UploadFile] = File(...),
    user: models.User = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    if len(files) > MAX_FILES_PER_REQUEST:
        raise BadRequestError(f"At most {MAX_FILES_PER_REQUEST} files can be uploaded at once")
    # validate everything before storing anything
    for f in files:
        validate_upload(f.filename, f.content_type, f.file.read(settings.MAX_UPLOAD_BYTES + 1), settings.MAX_UPLOAD_BYTES)
        f.file.seek(0)
    return ok([_store(f, storage, settings) for f in files], f"{len(files)} files uploaded successfully")


@router.delete("/{public_id}")
def delete_file(
    public_id: str,
    user: models.User = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_storage),
):
    require_role(user, ("instructor", "admin"), "Only instructors and admins can delete files")
    if not storage.delete(public_id):
        raise NotFoundError("File not found")
    return ok({"public_id": public_id}, "File deleted successfully")
