"""
LifeTube Core Settings.

Every value can be overridden with a ``LIFETUBE_``-prefixed environment
variable or a ``.env`` file next to the process working directory.

Two deployment modes are supported for binary assets:
  - local: videos and thumbnails live under ``uploads_dir`` and are served
    by the app itself under ``static_prefix``
  - s3: assets are pushed to an S3-compatible bucket (MinIO in dev) and
    referenced by their public URL
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        env_prefix="LIFETUBE_", case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "LifeTube"
    app_version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"
    api_prefix: str = "/api"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    # ── PostgreSQL ───────────────────────────────────────────────────────
    db_host: str = "postgres"
    db_port: int = 5432
    db_user: str = "lifetube"
    db_password: str = "lifetube_secret"
    db_name: str = "lifetube"
    db_url: Optional[str] = None
    db_echo: bool = False

    @property
    def database_url(self) -> str:
        if self.db_url:
            return self.db_url
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Auth ─────────────────────────────────────────────────────────────
    secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    # ── CORS ─────────────────────────────────────────────────────────────
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:5174",
        "https://lifetube-web.onrender.com",
    ]
    client_url: Optional[str] = None

    @property
    def cors_origins(self) -> List[str]:
        origins = list(self.allowed_origins)
        if self.client_url and self.client_url not in origins:
            origins.append(self.client_url)
        return origins

    # ── Storage ──────────────────────────────────────────────────────────
    storage_backend: str = "local"  # local | s3
    uploads_dir: str = "uploads"
    static_prefix: str = "/uploads"
    temp_dir: str = "uploads/temp"

    # ── MinIO / S3 ───────────────────────────────────────────────────────
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "lifetube_minio"
    minio_secret_key: str = "lifetube_minio_secret"
    minio_bucket: str = "lifetube-media"
    minio_secure: bool = False
    minio_public_url: Optional[str] = None

    # ── Media Processing ─────────────────────────────────────────────────
    ffprobe_binary: str = "ffprobe"
    ffmpeg_binary: str = "ffmpeg"
    probe_timeout_seconds: float = 60.0
    thumbnail_offset_seconds: int = 2
    thumbnail_size: str = "640x360"
    placeholder_thumbnail_url: str = "https://via.placeholder.com/640x360?text=No+Thumbnail"

    max_video_bytes: int = 500 * 1024 * 1024
    max_thumbnail_bytes: int = 5 * 1024 * 1024
    upload_chunk_bytes: int = 1024 * 1024
    # boundaries, part headers and form fields around the two files
    upload_overhead_bytes: int = 64 * 1024

    @property
    def max_upload_request_bytes(self) -> int:
        return self.max_video_bytes + self.max_thumbnail_bytes + self.upload_overhead_bytes

    # extension -> accepted declared media types
    video_types: Dict[str, List[str]] = {
        "mp4": ["video/mp4"],
        "avi": ["video/x-msvideo", "video/avi"],
        "mov": ["video/quicktime"],
        "wmv": ["video/x-ms-wmv"],
        "flv": ["video/x-flv"],
        "mkv": ["video/x-matroska"],
        "webm": ["video/webm"],
    }
    image_types: Dict[str, List[str]] = {
        "jpeg": ["image/jpeg"],
        "jpg": ["image/jpeg"],
        "png": ["image/png"],
        "gif": ["image/gif"],
        "webp": ["image/webp"],
    }

    # ── Listing ──────────────────────────────────────────────────────────
    default_page_size: int = 20
    max_page_size: int = 100
    trending_limit: int = 20
    feed_limit: int = 30
    default_category: str = "General"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
