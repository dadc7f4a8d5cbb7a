"""
LifeTube Engagement Service: like/dislike and subscribe/unsubscribe toggles.

Each toggle reads the current relation row for (caller, target), resolves the
next state through the transition tables in ``toggles`` and applies exactly
one write. Writes for the same pair are serialized in-process; the unique
constraints on ``likes`` and ``subscriptions`` catch races across processes.
"""
from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lifetube.core.config import get_settings
from lifetube.core.errors import Conflict, NotFound, ValidationFailed, parse_uuid
from lifetube.models.models import Like, LikeKind, Subscription, User, Video
from lifetube.services.engagement.toggles import (
    KeyedLock,
    ToggleOutcome,
    next_like_state,
    next_subscription_state,
)

logger = logging.getLogger(__name__)
settings = get_settings()

LIKE_MESSAGES = {
    ToggleOutcome.ADDED: "Like added",
    ToggleOutcome.REMOVED: "Like removed",
    ToggleOutcome.UPDATED: "Like updated",
}

SUBSCRIPTION_MESSAGES = {
    ToggleOutcome.SUBSCRIBED: "Subscribed successfully",
    ToggleOutcome.UNSUBSCRIBED: "Unsubscribed successfully",
}


class EngagementService:
    """Toggle handlers plus the read-time aggregates derived from them."""

    def __init__(self):
        self._locks = KeyedLock()

    # ── Likes ────────────────────────────────────────────────────────────

    async def toggle_like(
        self, db: AsyncSession, user_id: uuid.UUID, video_id: uuid.UUID, requested: Optional[str],
    ) -> Tuple[ToggleOutcome, str]:
        try:
            kind = LikeKind(requested)
        except ValueError:
            raise ValidationFailed("Invalid type")

        if await db.scalar(select(Video.id).where(Video.id == video_id)) is None:
            raise NotFound("Video not found")

        async with self._locks.hold(("like", user_id, video_id)):
            existing = await db.scalar(
                select(Like).where(Like.user_id == user_id, Like.video_id == video_id)
            )
            current = existing.type if existing else None
            target, outcome = next_like_state(current, kind)

            if existing is None:
                db.add(Like(user_id=user_id, video_id=video_id, type=target))
            elif target is None:
                await db.execute(delete(Like).where(Like.id == existing.id))
            else:
                await db.execute(update(Like).where(Like.id == existing.id).values(type=target))

            await self._commit(db, "Like already recorded, retry the request")

        logger.info(f"Like toggle user={user_id} video={video_id} {current} -> {target} ({outcome.value})")
        return outcome, LIKE_MESSAGES[outcome]

    async def like_counts(self, db: AsyncSession, video_id: uuid.UUID) -> Dict[LikeKind, int]:
        """Count marks per kind at read time."""
        result = await db.execute(
            select(Like.type, func.count(Like.id))
            .where(Like.video_id == video_id)
            .group_by(Like.type)
        )
        counts = {kind: 0 for kind in LikeKind}
        for kind, cnt in result:
            counts[LikeKind(kind)] = cnt
        return counts

    # ── Subscriptions ────────────────────────────────────────────────────

    async def toggle_subscription(
        self, db: AsyncSession, subscriber_id: uuid.UUID, channel_id_raw: Optional[str],
    ) -> Tuple[bool, str]:
        if not channel_id_raw:
            raise ValidationFailed("Channel ID is required")
        channel_id = parse_uuid(channel_id_raw, "Invalid channel ID")
        if channel_id == subscriber_id:
            raise ValidationFailed("Cannot subscribe to yourself")

        if await db.scalar(select(User.id).where(User.id == channel_id)) is None:
            raise NotFound("Channel not found")

        async with self._locks.hold(("subscription", subscriber_id, channel_id)):
            existing = await db.scalar(
                select(Subscription).where(
                    Subscription.subscriber_id == subscriber_id,
                    Subscription.channel_id == channel_id,
                )
            )
            subscribed, outcome = next_subscription_state(existing is not None)

            if subscribed:
                db.add(Subscription(subscriber_id=subscriber_id, channel_id=channel_id))
            else:
                await db.execute(delete(Subscription).where(Subscription.id == existing.id))

            await self._commit(db, "Subscription already recorded, retry the request")

        logger.info(f"Subscription toggle {subscriber_id} -> {channel_id} ({outcome.value})")
        return subscribed, SUBSCRIPTION_MESSAGES[outcome]

    async def is_subscribed(
        self, db: AsyncSession, subscriber_id: uuid.UUID, channel_id: uuid.UUID,
    ) -> bool:
        found = await db.scalar(
            select(Subscription.id).where(
                Subscription.subscriber_id == subscriber_id,
                Subscription.channel_id == channel_id,
            )
        )
        return found is not None

    async def subscriber_count(self, db: AsyncSession, channel_id: uuid.UUID) -> int:
        return await db.scalar(
            select(func.count(Subscription.id)).where(Subscription.channel_id == channel_id)
        ) or 0

    async def subscriptions_of(self, db: AsyncSession, subscriber_id: uuid.UUID) -> List[Subscription]:
        result = await db.execute(
            select(Subscription)
            .where(Subscription.subscriber_id == subscriber_id)
            .order_by(Subscription.created_at.desc())
        )
        return list(result.scalars().all())

    async def subscription_feed(self, db: AsyncSession, subscriber_id: uuid.UUID) -> List[Video]:
        """Newest videos from subscribed channels, capped at ``feed_limit``."""
        channel_ids = (
            await db.scalars(
                select(Subscription.channel_id).where(Subscription.subscriber_id == subscriber_id)
            )
        ).all()
        if not channel_ids:
            return []

        result = await db.execute(
            select(Video)
            .where(Video.user_id.in_(channel_ids))
            .order_by(Video.created_at.desc())
            .limit(settings.feed_limit)
        )
        return list(result.scalars().all())

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    async def _commit(db: AsyncSession, conflict_message: str) -> None:
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"Toggle lost a race against another writer: {e.orig}")
            raise Conflict(conflict_message) from e


engagement_service = EngagementService()
