"""
LifeTube Content Service: owner-checked deletes and comment threading.

Comment threads are two levels deep. A reply addressed to another reply is
attached to that reply's top-level comment, so the read path never has to
walk deeper than one level.
"""
from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lifetube.core.errors import NotAuthorized, NotFound, ValidationFailed, parse_uuid
from lifetube.core.metrics import ORPHANED_ASSETS_TOTAL
from lifetube.models.models import Comment, Like, Video
from lifetube.schemas.schemas import CommentCreate
from lifetube.services.storage.storage_service import StorageBackend

logger = logging.getLogger(__name__)


class ContentService:

    # ── Videos ───────────────────────────────────────────────────────────

    async def delete_video(
        self, db: AsyncSession, storage: StorageBackend, user_id: uuid.UUID, video_id: uuid.UUID,
    ) -> None:
        video = await db.scalar(select(Video).where(Video.id == video_id))
        if video is None:
            raise NotFound("Video not found")
        if video.user_id != user_id:
            raise NotAuthorized("Unauthorized")

        video_url, thumbnail_url = video.video_url, video.thumbnail_url

        await db.execute(delete(Like).where(Like.video_id == video_id))
        await db.execute(delete(Comment).where(Comment.video_id == video_id))
        await db.execute(delete(Video).where(Video.id == video_id))
        await db.commit()

        # Best-effort: a failed asset delete never resurrects the row.
        for url in (video_url, thumbnail_url):
            if not storage.owns(url):
                continue
            try:
                await storage.delete(url)
            except Exception as e:
                ORPHANED_ASSETS_TOTAL.labels(reason="delete_failed").inc()
                logger.warning(f"Could not delete asset {url} of video {video_id}: {e}")

        logger.info(f"Deleted video {video_id} by owner {user_id}")

    # ── Comments ─────────────────────────────────────────────────────────

    async def add_comment(self, db: AsyncSession, user_id: uuid.UUID, data: CommentCreate) -> Comment:
        text = (data.text or "").strip()
        if not data.video_id or not text:
            raise ValidationFailed("Video ID and text are required")
        video_id = parse_uuid(data.video_id, "Invalid video ID")

        if await db.scalar(select(Video.id).where(Video.id == video_id)) is None:
            raise NotFound("Video not found")

        parent_id = None
        if data.parent_id:
            parent = await db.scalar(
                select(Comment).where(Comment.id == parse_uuid(data.parent_id, "Invalid parent comment ID"))
            )
            if parent is None or parent.video_id != video_id:
                raise ValidationFailed("Parent comment not found on this video")
            parent_id = parent.parent_id or parent.id

        comment = Comment(user_id=user_id, video_id=video_id, parent_id=parent_id, text=text)
        db.add(comment)
        await db.flush()
        await db.refresh(comment)
        return comment

    async def list_threads(self, db: AsyncSession, video_id: uuid.UUID) -> List[Tuple[Comment, List[Comment]]]:
        """Top-level comments newest first, each with its replies oldest first."""
        roots = (
            await db.execute(
                select(Comment)
                .where(Comment.video_id == video_id, Comment.parent_id.is_(None))
                .order_by(Comment.created_at.desc())
            )
        ).scalars().all()
        if not roots:
            return []

        # One query for every reply on the page
        replies: Dict[uuid.UUID, List[Comment]] = {c.id: [] for c in roots}
        result = await db.execute(
            select(Comment)
            .where(Comment.parent_id.in_(list(replies)))
            .order_by(Comment.created_at.asc())
        )
        for reply in result.scalars().all():
            replies[reply.parent_id].append(reply)

        return [(root, replies[root.id]) for root in roots]

    async def delete_comment(self, db: AsyncSession, user_id: uuid.UUID, comment_id: uuid.UUID) -> None:
        owner: Optional[uuid.UUID] = await db.scalar(
            select(Comment.user_id).where(Comment.id == comment_id)
        )
        if owner is None:
            raise NotFound("Comment not found")
        if owner != user_id:
            raise NotAuthorized("Unauthorized")

        await db.execute(
            delete(Comment).where(or_(Comment.id == comment_id, Comment.parent_id == comment_id))
        )
        logger.info(f"Deleted comment {comment_id} by author {user_id}")


content_service = ContentService()
