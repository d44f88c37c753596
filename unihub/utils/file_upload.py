"""
File Upload Utility - Validate product/profile images before upload.

Accepted:
- any image/* content type
- otherwise a filename ending in .jpg, .jpeg, .png, .webp or .gif

Max file size: 5MB (configurable via UPLOAD_MAX_MB)
"""

from typing import Optional, Tuple

from fastapi import UploadFile

from unihub.core.errors import InvalidInput, PayloadTooLarge

MAX_FILE_SIZE_MB = 5
ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.gif'}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def is_allowed_image(filename: Optional[str], content_type: Optional[str]) -> bool:
    if content_type and content_type.lower().startswith('image/'):
        return True
    return get_file_extension(filename or '') in ALLOWED_EXTENSIONS


async def read_image_upload(file: Optional[UploadFile], max_mb: int = MAX_FILE_SIZE_MB) -> Tuple[bytes, str, str]:
    """
    Read and validate an uploaded image.

    Returns:
        Tuple of (content, filename, content_type)

    Raises:
        InvalidInput when no file was sent or it is not an image
        PayloadTooLarge when it exceeds max_mb
    """
    if file is None or not file.filename:
        raise InvalidInput("No image file provided")

    if not is_allowed_image(file.filename, file.content_type):
        raise InvalidInput("Only image files are allowed (jpg, jpeg, png, webp, gif)")

    # one byte past the limit is enough to detect oversize files
    max_bytes = max_mb * 1024 * 1024
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise PayloadTooLarge(f"File too large. Maximum size: {max_mb}MB")
    if not content:
        raise InvalidInput("Uploaded file is empty")

    return content, file.filename, file.content_type or "application/octet-stream"
