"""
LifeTube API: Video routes.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lifetube.core.config import get_settings
from lifetube.core.database import get_db
from lifetube.core.errors import NotFound, parse_uuid
from lifetube.core.security import CurrentUser, get_current_user
from lifetube.models.models import LikeKind, Video
from lifetube.schemas.schemas import (
    LikeRequest,
    LikeResponse,
    MessageResponse,
    VideoDetail,
    VideoDetailResponse,
    VideoListResponse,
    VideoSchema,
    VideoUploadResponse,
)
from lifetube.services.content.content_service import content_service
from lifetube.services.engagement.engagement_service import engagement_service
from lifetube.services.media.ingestion_service import IngestionService, UploadForm, get_ingestion_service
from lifetube.services.storage.storage_service import StorageBackend, get_storage

settings = get_settings()
router = APIRouter(prefix="/videos", tags=["Videos"])

INVALID_VIDEO_ID = "Invalid video ID format"


@router.get("", response_model=VideoListResponse)
async def list_videos(
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List videos newest first, optionally filtered by category and text search."""
    query = select(Video).order_by(Video.created_at.desc()).offset(offset).limit(limit)
    if category and category != "All":
        query = query.where(Video.category == category)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Video.title.ilike(pattern), Video.description.ilike(pattern)))

    result = await db.execute(query)
    return VideoListResponse(videos=[VideoSchema.from_model(v) for v in result.scalars().all()])


@router.get("/trending", response_model=VideoListResponse)
async def trending_videos(db: AsyncSession = Depends(get_db)):
    """Most viewed videos."""
    result = await db.execute(
        select(Video).order_by(Video.views.desc()).limit(settings.trending_limit)
    )
    return VideoListResponse(videos=[VideoSchema.from_model(v) for v in result.scalars().all()])


@router.post("/upload", response_model=VideoUploadResponse, status_code=201)
async def upload_video(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    video: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    ingestion: IngestionService = Depends(get_ingestion_service),
    db: AsyncSession = Depends(get_db),
):
    """Run the ingestion pipeline for one uploaded video."""
    form = UploadForm(title=title, description=description, category=category, tags=tags)
    record = await ingestion.ingest(db, user.id, form, video, thumbnail)
    return VideoUploadResponse(video=VideoSchema.from_model(record))


@router.get("/{video_id}", response_model=VideoDetailResponse)
async def get_video(video_id: str, db: AsyncSession = Depends(get_db)):
    """Video detail with like/dislike counts computed at read time."""
    vid_uuid = parse_uuid(video_id, INVALID_VIDEO_ID)
    video = await db.scalar(select(Video).where(Video.id == vid_uuid))
    if video is None:
        raise NotFound("Video not found")

    counts = await engagement_service.like_counts(db, vid_uuid)
    detail = VideoDetail(
        **VideoSchema.from_model(video).model_dump(),
        like_count=counts[LikeKind.LIKE],
        dislike_count=counts[LikeKind.DISLIKE],
    )
    return VideoDetailResponse(video=detail)


@router.post("/{video_id}/view", response_model=MessageResponse)
async def increment_views(video_id: str, db: AsyncSession = Depends(get_db)):
    """Atomically bump the view counter."""
    result = await db.execute(
        update(Video).where(Video.id == parse_uuid(video_id, INVALID_VIDEO_ID)).values(views=Video.views + 1)
    )
    if result.rowcount == 0:
        raise NotFound("Video not found")
    return MessageResponse(message="View count incremented")


@router.post("/{video_id}/like", response_model=LikeResponse)
async def like_video(
    video_id: str,
    body: LikeRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Toggle a like or dislike mark."""
    outcome, message = await engagement_service.toggle_like(
        db, user.id, parse_uuid(video_id, INVALID_VIDEO_ID), body.type,
    )
    return LikeResponse(message=message, result=outcome.value)


@router.delete("/{video_id}", response_model=MessageResponse)
async def delete_video(
    video_id: str,
    user: CurrentUser = Depends(get_current_user),
    storage: StorageBackend = Depends(get_storage),
    db: AsyncSession = Depends(get_db),
):
    """Owner-only delete; stored assets are removed best-effort."""
    await content_service.delete_video(db, storage, user.id, parse_uuid(video_id, INVALID_VIDEO_ID))
    return MessageResponse(message="Video deleted successfully")
