"""
LifeTube asset storage: durable home for video and thumbnail bytes.

Two backends share one interface:
  - LocalStorage copies into ``uploads_dir/<folder>/`` and hands out URLs
    under the static prefix the app serves
  - S3Storage pushes to an S3-compatible bucket (MinIO in dev) with boto3
    and hands out public object URLs

Blocking I/O runs in a worker thread so requests keep sharing the event loop.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
from functools import lru_cache
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import boto3

from lifetube.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

VIDEO_FOLDER = "videos"
THUMBNAIL_FOLDER = "thumbnails"


class StorageBackend:
    """Put/delete by key with public-URL resolution."""

    async def save(self, local_path: Path, folder: str, filename: str, content_type: Optional[str] = None) -> str:
        raise NotImplementedError

    async def delete(self, url: str) -> bool:
        raise NotImplementedError

    def owns(self, url: Optional[str]) -> bool:
        raise NotImplementedError


class LocalStorage(StorageBackend):

    def __init__(self, root: Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_dirs(self) -> None:
        for folder in (VIDEO_FOLDER, THUMBNAIL_FOLDER):
            (self.root / folder).mkdir(parents=True, exist_ok=True)

    async def save(self, local_path: Path, folder: str, filename: str, content_type: Optional[str] = None) -> str:
        dest = self.root / folder / filename
        await asyncio.to_thread(self._copy, Path(local_path), dest)
        return f"{self.url_prefix}/{folder}/{filename}"

    @staticmethod
    def _copy(src: Path, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)

    def owns(self, url: Optional[str]) -> bool:
        return bool(url) and url.startswith(self.url_prefix + "/")

    def path_for(self, url: str) -> Path:
        relative = url[len(self.url_prefix) + 1:]
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"URL escapes storage root: {url}")
        return path

    async def delete(self, url: str) -> bool:
        if not self.owns(url):
            return False
        path = self.path_for(url)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        return True


class S3Storage(StorageBackend):

    def __init__(self, client, bucket: str, public_base: str):
        self.client = client
        self.bucket = bucket
        self.public_base = public_base.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3Storage":
        scheme = "https" if settings.minio_secure else "http"
        endpoint = settings.minio_endpoint
        endpoint_url = endpoint if "://" in endpoint else f"{scheme}://{endpoint}"
        client = boto3.client(
            "s3",
            aws_access_key_id=settings.minio_access_key,
            aws_secret_access_key=settings.minio_secret_key,
            endpoint_url=endpoint_url,
        )
        public_base = settings.minio_public_url or f"{endpoint_url}/{settings.minio_bucket}"
        return cls(client, settings.minio_bucket, public_base)

    async def save(self, local_path: Path, folder: str, filename: str, content_type: Optional[str] = None) -> str:
        key = f"{folder}/{filename}"
        extra = {"ContentType": content_type} if content_type else None
        await asyncio.to_thread(
            self.client.upload_file, str(local_path), self.bucket, key, ExtraArgs=extra,
        )
        return f"{self.public_base}/{key}"

    def owns(self, url: Optional[str]) -> bool:
        return bool(url) and url.startswith(self.public_base + "/")

    def key_for(self, url: str) -> str:
        return urlparse(url[len(self.public_base) + 1:]).path

    async def delete(self, url: str) -> bool:
        if not self.owns(url):
            return False
        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=self.key_for(url))
        return True


@lru_cache()
def get_storage() -> StorageBackend:
    settings = get_settings()
    if settings.storage_backend == "s3":
        logger.info(f"Using S3 storage bucket={settings.minio_bucket} endpoint={settings.minio_endpoint}")
        return S3Storage.from_settings(settings)
    return LocalStorage(Path(settings.uploads_dir), settings.static_prefix)
