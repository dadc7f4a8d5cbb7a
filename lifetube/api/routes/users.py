"""
LifeTube API: User profile and subscription routes.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lifetube.core.database import get_db
from lifetube.core.errors import NotFound, ValidationFailed, parse_uuid
from lifetube.core.security import CurrentUser, get_current_user
from lifetube.models.models import User, Video
from lifetube.schemas.schemas import (
    ProfileResponse,
    SubscribeRequest,
    SubscribeResponse,
    SubscriptionCheckResponse,
    SubscriptionListResponse,
    SubscriptionSchema,
    VideoListResponse,
    VideoSchema,
    profile_from_user,
)
from lifetube.services.engagement.engagement_service import engagement_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/subscribe", response_model=SubscribeResponse)
async def subscribe(
    body: SubscribeRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Toggle a subscription to a channel."""
    subscribed, message = await engagement_service.toggle_subscription(db, user.id, body.channel_id)
    return SubscribeResponse(message=message, subscribed=subscribed)


@router.get("/subscriptions/list", response_model=SubscriptionListResponse)
async def list_subscriptions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Channels the caller is subscribed to."""
    subs = await engagement_service.subscriptions_of(db, user.id)
    return SubscriptionListResponse(subscriptions=[SubscriptionSchema.from_model(s) for s in subs])


@router.get("/subscriptions/feed", response_model=VideoListResponse)
async def subscription_feed(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Recent videos from subscribed channels."""
    videos = await engagement_service.subscription_feed(db, user.id)
    return VideoListResponse(videos=[VideoSchema.from_model(v) for v in videos])


@router.get("/subscriptions/check/{channel_id}", response_model=SubscriptionCheckResponse)
async def check_subscription(
    channel_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Whether the caller follows ``channel_id``; lookup failures read as not subscribed."""
    try:
        channel = parse_uuid(channel_id, "Invalid channel ID")
    except ValidationFailed:
        return SubscriptionCheckResponse(subscribed=False)

    try:
        subscribed = await engagement_service.is_subscribed(db, user.id, channel)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(f"Subscription check failed for {user.id} -> {channel_id}: {e}")
        subscribed = False
    return SubscriptionCheckResponse(subscribed=subscribed)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_user_profile(user_id: str, db: AsyncSession = Depends(get_db)):
    """Public profile with subscriber count and owned videos."""
    uid = parse_uuid(user_id, "Invalid user ID format")
    user = await db.get(User, uid)
    if user is None:
        raise NotFound("User not found")

    result = await db.execute(
        select(Video).where(Video.user_id == uid).order_by(Video.created_at.desc())
    )
    subscriber_count = await engagement_service.subscriber_count(db, uid)
    return ProfileResponse(user=profile_from_user(user, subscriber_count, list(result.scalars().all())))
