"""
Upload Routes

POST /upload/image - Upload one image (multipart field "image", max 5MB) and get its CDN URL
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from unihub.api.deps import get_image_store, success
from unihub.core.auth import get_current_user
from unihub.core.config import get_settings
from unihub.core.errors import AppError
from unihub.services.image_store import ImageUploadError
from unihub.utils.file_upload import read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Upload"])


@router.post("/image")
async def upload_image(
    image: Optional[UploadFile] = File(None),
    user: dict = Depends(get_current_user),
    store=Depends(get_image_store),
):
    """Upload an image to Cloudinary and return its https URL."""
    content, filename, content_type = await read_image_upload(image, max_mb=get_settings().upload_max_mb)

    try:
        url = await run_in_threadpool(store.upload, content, filename, content_type)
    except ImageUploadError as e:
        logger.error("Image upload by %s failed: %s", user["_id"], e)
        raise AppError("Failed to upload image")

    return success({"url": url})
