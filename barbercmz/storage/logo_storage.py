"""Barbershop logo storage on an S3-compatible bucket (S3, R2, MinIO)."""

import logging
import uuid
from io import BytesIO

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from barbercmz.core import config

logger = logging.getLogger(__name__)

ALLOWED_LOGO_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif")


class LogoStorageError(Exception):
    """Raised when the storage backend is missing or rejects the upload."""


class InvalidLogoError(ValueError):
    """Raised when the uploaded bytes are not a readable image."""


def is_configured() -> bool:
    return bool(config.S3_BUCKET_NAME and config.S3_ACCESS_KEY_ID and config.S3_SECRET_ACCESS_KEY)


def get_s3_client():
    return boto3.client(
        "s3",
        endpoint_url=config.S3_ENDPOINT_URL or None,
        aws_access_key_id=config.S3_ACCESS_KEY_ID,
        aws_secret_access_key=config.S3_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def public_url(key: str) -> str:
    if config.LOGO_PUBLIC_BASE_URL:
        return f"{config.LOGO_PUBLIC_BASE_URL.rstrip('/')}/{key}"
    endpoint = (config.S3_ENDPOINT_URL or "https://s3.amazonaws.com").rstrip("/")
    return f"{endpoint}/{config.S3_BUCKET_NAME}/{key}"


def to_webp(content: bytes) -> bytes:
    """
    Re-encode an uploaded image as WebP, shrunk to fit ``LOGO_MAX_DIMENSION``.

    Decoding the bytes is what proves the upload is an image; the client
    content type is only a first filter.
    """
    size = (config.LOGO_MAX_DIMENSION, config.LOGO_MAX_DIMENSION)
    try:
        with Image.open(BytesIO(content)) as image:
            image.load()
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA")
            image.thumbnail(size, Image.Resampling.LANCZOS)
            output = BytesIO()
            image.save(output, format="WEBP", quality=85)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise InvalidLogoError("Logo is not a readable image") from exc
    return output.getvalue()


def upload_logo(barbershop_id: int, content: bytes) -> str:
    """Store WebP bytes and return their public URL."""
    if not is_configured():
        raise LogoStorageError("Logo storage is not configured")

    key = f"logos/{barbershop_id}/{uuid.uuid4().hex}.webp"

    try:
        get_s3_client().put_object(
            Bucket=config.S3_BUCKET_NAME,
            Key=key,
            Body=content,
            ContentType="image/webp",
            CacheControl="public, max-age=31536000",
        )
    except (BotoCoreError, ClientError) as exc:
        logger.error("Logo upload failed for barbershop %s: %s", barbershop_id, exc)
        raise LogoStorageError("Logo upload failed") from exc

    logger.info("Uploaded logo for barbershop %s to %s", barbershop_id, key)
    return public_url(key)
