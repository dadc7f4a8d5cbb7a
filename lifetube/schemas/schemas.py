"""
LifeTube API Schemas: Pydantic v2 models for request/response validation.

Column-backed fields keep their snake_case names; derived aggregates use the
camelCase names the web client reads (likeCount, subscriberCount, ...).
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lifetube.models.models import Comment, Subscription, User, Video


# ═══════════════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════════════

class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    avatar_url: Optional[str] = None


class ProfileSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    username: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    subscriber_count: int = Field(0, alias="subscriberCount")
    videos: List["VideoSchema"] = []


class ProfileResponse(BaseModel):
    user: ProfileSchema


# ═══════════════════════════════════════════════════════════════════════
# Videos
# ═══════════════════════════════════════════════════════════════════════

class VideoSchema(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str = ""
    category: str
    tags: List[str] = []
    video_url: str
    thumbnail_url: Optional[str] = None
    duration: int = 0
    views: int = 0
    created_at: Optional[datetime] = None
    users: Optional[UserBrief] = None

    @classmethod
    def from_model(cls, video: Video) -> "VideoSchema":
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description or "",
            category=video.category,
            tags=list(video.tags or []),
            video_url=video.video_url,
            thumbnail_url=video.thumbnail_url,
            duration=video.duration or 0,
            views=video.views or 0,
            created_at=video.created_at,
            users=UserBrief.model_validate(video.owner) if video.owner else None,
        )


class VideoDetail(VideoSchema):
    model_config = ConfigDict(populate_by_name=True)

    like_count: int = Field(0, alias="likeCount")
    dislike_count: int = Field(0, alias="dislikeCount")


class VideoListResponse(BaseModel):
    videos: List[VideoSchema]


class VideoDetailResponse(BaseModel):
    video: VideoDetail


class VideoUploadResponse(BaseModel):
    message: str = "Video uploaded successfully"
    video: VideoSchema


class LikeRequest(BaseModel):
    type: Optional[str] = None


class LikeResponse(BaseModel):
    message: str
    result: str


class MessageResponse(BaseModel):
    message: str


# ═══════════════════════════════════════════════════════════════════════
# Comments
# ═══════════════════════════════════════════════════════════════════════

class CommentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: Optional[str] = Field(None, alias="videoId")
    text: Optional[str] = None
    parent_id: Optional[str] = Field(None, alias="parentId")


class CommentSchema(BaseModel):
    id: uuid.UUID
    video_id: uuid.UUID
    user_id: uuid.UUID
    parent_id: Optional[uuid.UUID] = None
    text: str
    created_at: Optional[datetime] = None
    users: Optional[UserBrief] = None

    @classmethod
    def from_model(cls, comment: Comment) -> "CommentSchema":
        return cls(
            id=comment.id,
            video_id=comment.video_id,
            user_id=comment.user_id,
            parent_id=comment.parent_id,
            text=comment.text,
            created_at=comment.created_at,
            users=UserBrief.model_validate(comment.author) if comment.author else None,
        )


class CommentThreadSchema(CommentSchema):
    replies: List[CommentSchema] = []


class CommentListResponse(BaseModel):
    comments: List[CommentThreadSchema]


class CommentCreateResponse(BaseModel):
    message: str = "Comment added successfully"
    comment: CommentSchema


# ═══════════════════════════════════════════════════════════════════════
# Subscriptions
# ═══════════════════════════════════════════════════════════════════════

class SubscribeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    channel_id: Optional[str] = Field(None, alias="channelId")


class SubscribeResponse(BaseModel):
    message: str
    subscribed: bool


class SubscriptionSchema(BaseModel):
    id: uuid.UUID
    subscriber_id: uuid.UUID
    channel_id: uuid.UUID
    created_at: Optional[datetime] = None
    users: Optional[UserBrief] = None

    @classmethod
    def from_model(cls, sub: Subscription) -> "SubscriptionSchema":
        return cls(
            id=sub.id,
            subscriber_id=sub.subscriber_id,
            channel_id=sub.channel_id,
            created_at=sub.created_at,
            users=UserBrief.model_validate(sub.channel) if sub.channel else None,
        )


class SubscriptionListResponse(BaseModel):
    subscriptions: List[SubscriptionSchema]


class SubscriptionCheckResponse(BaseModel):
    subscribed: bool


# ═══════════════════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════════════════

class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "OK"
    message: str
    environment: str
    allowed_origins: List[str] = Field(alias="allowedOrigins")


def profile_from_user(user: User, subscriber_count: int, videos: List[Video]) -> ProfileSchema:
    return ProfileSchema(
        id=user.id,
        username=user.username,
        email=user.email,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
        subscriber_count=subscriber_count,
        videos=[VideoSchema.from_model(v) for v in videos],
    )


ProfileSchema.model_rebuild()
