"""Project image storage on an S3-compatible bucket.

Object layout::

    {user_id}/{project_id}/avatar.{ext}
    {user_id}/{project_id}/screenshots/{order}-{timestamp_ms}-{uuid}.{ext}

Public URLs follow ``{public_base}/storage/v1/object/public/{bucket}/{path}``
so rows written before the move to S3 keep resolving. boto3 is blocking;
every call goes through the threadpool.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from vca.config import get_settings
from vca.errors import StorageError, UploadValidationError

logger = logging.getLogger(__name__)

ALLOWED_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})
INVALID_TYPE = "INVALID_TYPE"
FILE_TOO_LARGE = "FILE_TOO_LARGE"
CACHE_CONTROL = "max-age=3600"


@dataclass(frozen=True)
class UploadResult:
    url: str
    path: str


def validate_image(content_type: str | None, size: int) -> None:
    """Reject unsupported or oversized images. Runs before any network call."""
    if content_type not in ALLOWED_TYPES:
        raise UploadValidationError(
            "Invalid file type. Please upload a JPEG, PNG, WebP, or GIF image.",
            code=INVALID_TYPE,
        )
    max_bytes = get_settings().storage_max_bytes
    if size > max_bytes:
        raise UploadValidationError(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
            code=FILE_TOO_LARGE,
        )


@lru_cache
def _client() -> Any:  # noqa: ANN401
    settings = get_settings()
    kwargs: dict[str, Any] = {
        "region_name": settings.storage_region,
        "config": Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    }
    if settings.storage_endpoint_url:
        kwargs["endpoint_url"] = settings.storage_endpoint_url
    if settings.storage_access_key and settings.storage_secret_key:
        kwargs["aws_access_key_id"] = settings.storage_access_key
        kwargs["aws_secret_access_key"] = settings.storage_secret_key
    return boto3.client("s3", **kwargs)


def reset_client() -> None:
    """Drop the cached client (settings changed)."""
    _client.cache_clear()


def _extension(filename: str | None) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[-1].lower()
        if ext:
            return ext
    return "jpg"


def _public_base() -> str:
    settings = get_settings()
    if settings.storage_public_base_url:
        return settings.storage_public_base_url.rstrip("/")
    if settings.storage_endpoint_url:
        return settings.storage_endpoint_url.rstrip("/")
    return f"https://s3.{settings.storage_region}.amazonaws.com"


def public_url(path: str) -> str:
    """Public URL for an object path."""
    return f"{_public_base()}/storage/v1/object/public/{get_settings().storage_bucket}/{path}"


def path_from_url(url: str | None) -> str | None:
    """Object path from a public URL, or None when the URL is not one of ours."""
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.netloc or not parsed.path:
        return None

    bucket = get_settings().storage_bucket
    match = re.search(rf"/storage/v1/object/public/{re.escape(bucket)}/(.+)", parsed.path)
    if match:
        return unquote(match.group(1))

    # Virtual-hosted S3 URLs: https://{bucket}.s3.{region}.amazonaws.com/{key}
    host = parsed.netloc.lower()
    if host == f"{bucket.lower()}.s3.amazonaws.com" or host.startswith(f"{bucket.lower()}.s3."):
        return unquote(parsed.path.lstrip("/")) or None
    return None


async def _put(path: str, data: bytes, content_type: str) -> None:
    bucket = get_settings().storage_bucket
    try:
        await run_in_threadpool(
            _client().put_object,
            Bucket=bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
            CacheControl=CACHE_CONTROL,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Upload of %s failed: %s", path, e)
        raise StorageError("Failed to upload image") from e


async def upload_project_avatar(
    user_id: str,
    project_id: str,
    filename: str | None,
    content_type: str | None,
    data: bytes,
) -> UploadResult:
    """Upload (overwrite) the project avatar."""
    validate_image(content_type, len(data))
    path = f"{user_id}/{project_id}/avatar.{_extension(filename)}"
    await _put(path, data, content_type or "")
    logger.info("Uploaded avatar for project %s", project_id)
    return UploadResult(url=public_url(path), path=path)


async def upload_project_screenshot(
    user_id: str,
    project_id: str,
    filename: str | None,
    content_type: str | None,
    data: bytes,
    order: int,
) -> UploadResult:
    """Upload a screenshot under a fresh, never-overwritten name."""
    validate_image(content_type, len(data))
    name = f"{order}-{int(time.time() * 1000)}-{uuid.uuid4()}.{_extension(filename)}"
    path = f"{user_id}/{project_id}/screenshots/{name}"
    await _put(path, data, content_type or "")
    logger.info("Uploaded screenshot %d for project %s", order, project_id)
    return UploadResult(url=public_url(path), path=path)


async def delete_images(paths: list[str]) -> None:
    """Delete objects by path. No-op for an empty list."""
    if not paths:
        return
    bucket = get_settings().storage_bucket
    try:
        await run_in_threadpool(
            _client().delete_objects,
            Bucket=bucket,
            Delete={"Objects": [{"Key": p} for p in paths], "Quiet": True},
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Deleting %d image(s) failed: %s", len(paths), e)
        raise StorageError("Failed to delete images") from e


async def list_project_images(user_id: str, project_id: str) -> list[str]:
    """Every object path under the project's prefix, screenshots included."""
    bucket = get_settings().storage_bucket
    prefix = f"{user_id}/{project_id}/"
    try:
        response = await run_in_threadpool(_client().list_objects_v2, Bucket=bucket, Prefix=prefix, MaxKeys=1000)
    except (BotoCoreError, ClientError) as e:
        logger.error("Listing images for %s failed: %s", prefix, e)
        raise StorageError("Failed to list project images") from e
    return [obj["Key"] for obj in response.get("Contents", [])]


async def delete_all_project_images(user_id: str, project_id: str) -> int:
    """Delete every stored image of a project. Returns the number deleted."""
    paths = await list_project_images(user_id, project_id)
    await delete_images(paths)
    return len(paths)
