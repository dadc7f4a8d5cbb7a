"""
LifeTube API: Comment routes.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lifetube.core.database import get_db
from lifetube.core.errors import parse_uuid
from lifetube.core.security import CurrentUser, get_current_user
from lifetube.schemas.schemas import (
    CommentCreate,
    CommentCreateResponse,
    CommentListResponse,
    CommentSchema,
    CommentThreadSchema,
    MessageResponse,
)
from lifetube.services.content.content_service import content_service

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.get("/video/{video_id}", response_model=CommentListResponse)
async def list_video_comments(video_id: str, db: AsyncSession = Depends(get_db)):
    """Top-level comments for a video, each with one level of replies."""
    threads = await content_service.list_threads(db, parse_uuid(video_id, "Invalid video ID"))
    return CommentListResponse(comments=[
        CommentThreadSchema(
            **CommentSchema.from_model(root).model_dump(),
            replies=[CommentSchema.from_model(r) for r in replies],
        )
        for root, replies in threads
    ])


@router.post("", response_model=CommentCreateResponse, status_code=201)
async def add_comment(
    data: CommentCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a comment, or a reply when ``parentId`` is given."""
    comment = await content_service.add_comment(db, user.id, data)
    return CommentCreateResponse(comment=CommentSchema.from_model(comment))


@router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Author-only delete; replies go with their comment."""
    await content_service.delete_comment(db, user.id, parse_uuid(comment_id, "Invalid comment ID"))
    return MessageResponse(message="Comment deleted successfully")
