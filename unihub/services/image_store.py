"""
Image Store - Cloudinary uploads and delivery URL optimization.

Uploads go through the Cloudinary SDK (signed with the account's API
secret); stored images are limited to 1000x1000. URLs handed back to
clients get a 600px auto-quality/auto-format delivery transformation.
"""

import io
import logging
from typing import List, Optional

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError

from unihub.core.config import Settings

logger = logging.getLogger(__name__)

UPLOAD_TRANSFORMATION = [{"width": 1000, "height": 1000, "crop": "limit"}]
DELIVERY_TRANSFORMATION = "w_600,q_auto,f_auto"


class ImageUploadError(Exception):
    """Raised when the blob store rejects or fails an upload."""


def optimize_cloudinary_url(url: Optional[str]) -> Optional[str]:
    """
    Add width/quality/format transformations to a stored Cloudinary URL.
    Non-Cloudinary URLs and URLs that already carry transformations are
    returned unchanged.
    """
    if not url or not isinstance(url, str):
        return url
    if "res.cloudinary.com" not in url or "/upload/" not in url:
        return url
    if "/w_" in url or "/c_" in url or "/h_" in url:
        return url
    return url.replace("/upload/", f"/upload/{DELIVERY_TRANSFORMATION}/", 1)


def optimize_cloudinary_urls(urls: Optional[List[str]]) -> List[str]:
    return [optimize_cloudinary_url(url) for url in urls or []]


class CloudinaryImageStore:
    def __init__(self, settings: Settings):
        self.cloud_name = settings.cloudinary_cloud_name
        self.folder = settings.cloudinary_folder
        self.timeout = settings.upload_timeout_sec
        self.configured = bool(
            settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret
        )
        if self.configured:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )

    def upload(self, content: bytes, filename: str, content_type: str) -> str:
        """Upload image bytes and return the https delivery URL."""
        if not self.configured:
            raise ImageUploadError("Cloudinary is not configured")

        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(content),
                folder=self.folder,
                resource_type="image",
                transformation=UPLOAD_TRANSFORMATION,
                timeout=self.timeout,
            )
        except CloudinaryError as e:
            logger.error("Cloudinary upload of %s (%s) failed: %s", filename, content_type, e)
            raise ImageUploadError(str(e)) from e

        url = result.get("secure_url")
        if not url and result.get("public_id"):
            url, _ = cloudinary.utils.cloudinary_url(
                result["public_id"],
                format=result.get("format"),
                resource_type="image",
                secure=True,
            )
        if not url:
            raise ImageUploadError("Cloudinary response did not include a URL")

        logger.info("Uploaded image %s", result.get("public_id"))
        return url
