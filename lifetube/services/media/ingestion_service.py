"""
LifeTube Ingestion Pipeline: uploaded video -> durable assets + metadata row.

Pipeline:
 1. Validate the form (title + video required) and the allow-lists
 2. Spool the video (and optional thumbnail) into a private temp directory
 3. Probe duration with ffprobe (0 on failure)
 4. Resolve the thumbnail: store the supplied image, or grab a frame at the
    configured offset; any failure of the grab falls back to the placeholder
 5. Store the video bytes
 6. Remove the temp directory (every exit path)
 7. Insert the ``videos`` row

There is no compensating transaction: if step 7 fails the stored assets stay
behind and are logged as orphans.
"""
from __future__ import annotations

import logging
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from lifetube.core.config import get_settings
from lifetube.core.errors import LifeTubeError, UpstreamFailure, ValidationFailed
from lifetube.core.metrics import ORPHANED_ASSETS_TOTAL, THUMBNAIL_FALLBACKS_TOTAL, UPLOADS_TOTAL
from lifetube.models.models import Video
from lifetube.services.media.media_probe import MediaProbe
from lifetube.services.media.uploads import check_allowed, parse_tags, spool_upload, unique_filename
from lifetube.services.storage.storage_service import (
    THUMBNAIL_FOLDER,
    VIDEO_FOLDER,
    StorageBackend,
    get_storage,
)

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class UploadForm:
    title: Optional[str]
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None


class IngestionService:
    """Orchestrates one upload end-to-end."""

    def __init__(
        self,
        storage: StorageBackend,
        probe: MediaProbe,
        temp_dir: Path,
        placeholder_url: str = settings.placeholder_thumbnail_url,
    ):
        self.storage = storage
        self.probe = probe
        self.temp_dir = Path(temp_dir)
        self.placeholder_url = placeholder_url

    # ── Main Entry Point ─────────────────────────────────────────────────

    async def ingest(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        form: UploadForm,
        video: Optional[UploadFile],
        thumbnail: Optional[UploadFile] = None,
    ) -> Video:
        title = (form.title or "").strip()
        if not title or video is None or not video.filename:
            raise ValidationFailed("Title and video file are required")

        video_ext = check_allowed(video, settings.video_types, "Only video files are allowed!")
        thumb_ext = None
        if thumbnail is not None and thumbnail.filename:
            thumb_ext = check_allowed(thumbnail, settings.image_types, "Only image files are allowed!")

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix="ingest_", dir=self.temp_dir))
        try:
            video_tmp = work_dir / unique_filename("video", video_ext)
            await spool_upload(video, video_tmp, settings.max_video_bytes)

            thumb_tmp = None
            if thumb_ext is not None:
                thumb_tmp = work_dir / unique_filename("thumb", thumb_ext)
                await spool_upload(thumbnail, thumb_tmp, settings.max_thumbnail_bytes)

            duration = await self.probe.probe_duration(video_tmp)

            if thumb_tmp is not None:
                thumbnail_url = await self.storage.save(
                    thumb_tmp, THUMBNAIL_FOLDER, thumb_tmp.name, thumbnail.content_type,
                )
            else:
                thumbnail_url = await self._generate_thumbnail(video_tmp, work_dir)

            video_url = await self.storage.save(
                video_tmp, VIDEO_FOLDER, video_tmp.name, video.content_type,
            )
        except LifeTubeError:
            UPLOADS_TOTAL.labels(outcome="rejected").inc()
            raise
        except Exception as e:
            UPLOADS_TOTAL.labels(outcome="failed").inc()
            logger.exception(f"Upload failed before metadata insert: {e}")
            raise UpstreamFailure("Server error during video upload") from e
        finally:
            self._cleanup(work_dir)

        record = Video(
            user_id=user_id,
            title=title,
            description=form.description or "",
            category=form.category or settings.default_category,
            tags=parse_tags(form.tags),
            video_url=video_url,
            thumbnail_url=thumbnail_url,
            duration=duration,
            views=0,
        )
        db.add(record)
        try:
            await db.flush()
            await db.refresh(record)
        except Exception as e:
            UPLOADS_TOTAL.labels(outcome="failed").inc()
            ORPHANED_ASSETS_TOTAL.labels(reason="insert_failed").inc()
            logger.error(f"Metadata insert failed, stored assets orphaned: video={video_url} thumbnail={thumbnail_url}: {e}")
            raise UpstreamFailure("Server error during video upload") from e

        UPLOADS_TOTAL.labels(outcome="created").inc()
        logger.info(f"Ingested video {record.id} ({duration}s) for user {user_id}")
        return record

    # ── Thumbnail ────────────────────────────────────────────────────────

    async def _generate_thumbnail(self, video_path: Path, work_dir: Path) -> str:
        frame_path = work_dir / unique_filename("thumb", ".png")
        try:
            await self.probe.extract_frame(video_path, frame_path)
            return await self.storage.save(frame_path, THUMBNAIL_FOLDER, frame_path.name, "image/png")
        except Exception as e:
            logger.warning(f"Thumbnail generation failed, using placeholder: {e}")
            THUMBNAIL_FALLBACKS_TOTAL.inc()
            return self.placeholder_url

    # ── Cleanup ──────────────────────────────────────────────────────────

    @staticmethod
    def _cleanup(work_dir: Path):
        """Remove temporary files."""
        try:
            shutil.rmtree(work_dir, ignore_errors=True)
        except Exception as e:
            logger.warning(f"Cleanup failed: {e}")


@lru_cache()
def get_ingestion_service() -> IngestionService:
    return IngestionService(
        storage=get_storage(),
        probe=MediaProbe(),
        temp_dir=Path(settings.temp_dir),
    )
