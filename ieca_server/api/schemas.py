# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pydantic schemas for API request/response."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

NotificationType = Literal["INFO", "SUCCESS", "WARNING", "ERROR"]
PostStatus = Literal["DRAFT", "PUBLISHED", "ARCHIVED"]
Difficulty = Literal["BEGINNER", "INTERMEDIATE", "ADVANCED", "EXPERT"]
MessageType = Literal["TEXT", "FILE", "IMAGE", "CODE", "DOCUMENT"]
UsageStatus = Literal["PENDING", "COMPLETED", "FAILED"]
EmailStatus = Literal["PENDING", "SENT", "FAILED"]


def reject_null(value: Any) -> Any:
    """Partial updates may omit a required column but never set it to null."""
    if value is None:
        raise ValueError("Field may not be null")
    return value


# Auth
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8)


class UserLogin(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str = Field(min_length=1)


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    new_password: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberResponse(BaseModel):
    id: int
    name: str
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Notifications
class NotificationCreate(BaseModel):
    user_id: int
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    type: NotificationType = "INFO"


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Blog
class BlogPostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    excerpt: str | None = None
    tags: list[str] = Field(default_factory=list)
    status: PostStatus = "PUBLISHED"


class BlogPostUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    excerpt: str | None = None
    tags: list[str] | None = None
    status: PostStatus | None = None

    _required = field_validator("title", "content", "tags", "status", mode="before")(reject_null)


class CommentResponse(BaseModel):
    id: int
    content: str
    user_id: int
    post_id: int
    author_name: str | None = None
    created_at: datetime
    updated_at: datetime


class BlogPostResponse(BaseModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    tags: list[str]
    status: str
    author_id: int
    author_name: str | None = None
    comment_count: int = 0
    comments: list[CommentResponse] | None = None
    created_at: datetime
    updated_at: datetime


# Comments
class CommentCreate(BaseModel):
    post_id: int
    content: str = Field(min_length=1)


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1)


# Resources
class ResourceCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    content: str | None = None
    file_url: str | None = None
    category: str = Field(min_length=1, max_length=64)
    tags: list[str] = Field(default_factory=list)
    author_name: str = Field(min_length=1, max_length=255)
    difficulty: Difficulty = "BEGINNER"
    status: PostStatus = "PUBLISHED"


class ResourceUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    content: str | None = None
    file_url: str | None = None
    category: str | None = Field(default=None, min_length=1, max_length=64)
    tags: list[str] | None = None
    author_name: str | None = None
    difficulty: Difficulty | None = None
    status: PostStatus | None = None

    _required = field_validator(
        "title", "category", "tags", "author_name", "difficulty", "status", mode="before"
    )(reject_null)


class ResourceResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    content: str | None = None
    file_url: str | None = None
    category: str
    tags: list[str]
    author_name: str
    difficulty: str
    status: str
    views: int
    downloads: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Global chat
class ChatMessageCreate(BaseModel):
    content: str = ""
    message_type: MessageType = "TEXT"
    reply_to_id: int | None = None


class ChatMessageUpdate(BaseModel):
    content: str = Field(min_length=1)


class ReactionRequest(BaseModel):
    emoji: str = Field(min_length=1, max_length=32)
    action: Literal["add", "remove"]


class ReactionGroup(BaseModel):
    emoji: str
    count: int
    user_ids: list[int]


class ReactionState(BaseModel):
    message_id: int
    reactions: list[ReactionGroup]


class ChatMessageResponse(BaseModel):
    id: int
    room_id: int
    user_id: int
    author_name: str | None = None
    content: str
    message_type: str
    reply_to_id: int | None = None
    is_edited: bool
    reactions: list[ReactionGroup] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ChatRoomResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OnlineMember(BaseModel):
    user_id: int
    name: str
    role: str
    last_seen_at: datetime


# Email
class EmailTemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    type: str = "TRANSACTIONAL"
    subject: str = Field(min_length=1, max_length=255)
    html_content: str = Field(min_length=1)
    text_content: str | None = None
    is_active: bool = True


class EmailTemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    type: str | None = None
    subject: str | None = Field(default=None, min_length=1, max_length=255)
    html_content: str | None = Field(default=None, min_length=1)
    text_content: str | None = None
    is_active: bool | None = None

    _required = field_validator(
        "name", "type", "subject", "html_content", "is_active", mode="before"
    )(reject_null)


class EmailTemplateResponse(BaseModel):
    id: int
    name: str
    type: str
    subject: str
    html_content: str
    text_content: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TemplatePreviewRequest(BaseModel):
    variables: dict[str, Any] = Field(default_factory=dict)


class EmailLogResponse(BaseModel):
    id: int
    template_id: int | None = None
    kind: str | None = None
    recipient: str
    subject: str
    status: str
    error_message: str | None = None
    details: dict[str, Any] | None = None
    sent_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Badge(BaseModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""


class BadgeEmailRequest(BaseModel):
    user_id: int
    badge: Badge
    total_badges: int = Field(default=1, ge=0)
    next_badge_hint: str | None = None


# Security tools
class ToolUsageCreate(BaseModel):
    target: str | None = Field(default=None, max_length=512)
    status: UsageStatus = "PENDING"


class ToolUsageResponse(BaseModel):
    id: int
    tool_id: int
    user_id: int
    target: str | None = None
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
