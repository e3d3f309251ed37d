"""Provider photo storage on Cloudflare R2 (public bucket)"""

import logging
import time
from typing import Optional

import boto3
from botocore.config import Config
from fastapi import HTTPException

from ..config import (
    R2_ACCESS_KEY_ID,
    R2_ACCOUNT_ID,
    R2_BUCKET_NAME,
    R2_PUBLIC_URL,
    R2_SECRET_ACCESS_KEY,
)

logger = logging.getLogger(__name__)

# Allowed image types for provider photos
ALLOWED_IMAGE_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "image/heif": "heif",
    "image/avif": "avif",
}

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

DANGEROUS_FILENAME_CHARS = ["..", "/", "\\", "<", ">", ":", '"', "|", "?", "*"]


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def validate_image_upload(content_type: Optional[str], filename: Optional[str], size: int) -> str:
    """Validate an uploaded image and return the file extension to store it under"""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PNG, JPEG, WebP, GIF, HEIC and AVIF images are allowed.",
        )

    if filename:
        for char in DANGEROUS_FILENAME_CHARS:
            if char in filename:
                logger.warning(f"❌ Dangerous character '{char}' detected in filename: '{filename}'")
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid filename - contains dangerous character '{char}'",
                )
        if len(filename) > 255:
            raise HTTPException(status_code=400, detail="Filename too long - maximum 255 characters")

    if size == 0:
        raise HTTPException(status_code=400, detail="File is empty")
    if size > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds 10MB limit. Your file is {size / (1024 * 1024):.2f}MB.",
        )

    return ALLOWED_IMAGE_TYPES[content_type]


def build_photo_key(provider_id: str, extension: str, timestamp_ms: Optional[int] = None) -> str:
    """Object key: {providerId}/{timestamp}.{ext}"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{provider_id}/{timestamp_ms}.{extension}"


class PhotoStorage:
    """Uploads and deletes provider photos in the public bucket"""

    def __init__(self, client=None, bucket: str = R2_BUCKET_NAME, public_url: str = R2_PUBLIC_URL):
        self._client = client
        self.bucket = bucket
        self.public_url = public_url

    @property
    def client(self):
        if self._client is None:
            self._client = get_r2_client()
        return self._client

    def is_available(self) -> bool:
        return self._client is not None or bool(R2_ACCOUNT_ID and R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY)

    def public_url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        prefix = f"{self.public_url}/"
        if self.public_url and url.startswith(prefix):
            return url[len(prefix):]
        return None

    def upload(self, provider_id: str, contents: bytes, content_type: str, extension: str) -> str:
        """Store the bytes and return the public URL"""
        key = build_photo_key(provider_id, extension)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=contents,
                ContentType=content_type,
                CacheControl="public, max-age=31536000",
            )
        except Exception as e:
            logger.error(f"❌ Failed to upload photo {key}: {e}")
            raise HTTPException(status_code=500, detail="Failed to upload photo") from e

        logger.info(f"✅ Uploaded photo {key}")
        return self.public_url_for(key)

    def delete(self, url: str) -> None:
        """Delete the object behind a public URL; unknown URLs are left alone"""
        key = self.key_from_url(url)
        if not key:
            logger.warning(f"⚠️ Photo URL not in our bucket, skipping delete: {url}")
            return
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            logger.info(f"🗑️ Deleted photo {key}")
        except Exception as e:
            logger.error(f"❌ Failed to delete photo {key}: {e}")


def get_photo_storage() -> PhotoStorage:
    if not PhotoStorage().is_available():
        raise HTTPException(status_code=503, detail="Photo storage not configured")
    return PhotoStorage()
