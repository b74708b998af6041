# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Blog and comment API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.envelope import ok
from ieca_server.api.schemas import BlogPostCreate, BlogPostUpdate, CommentCreate, CommentUpdate
from ieca_server.auth import get_current_user, get_optional_user
from ieca_server.database import get_db
from ieca_server.models import User
from ieca_server.services import blog, comments

router = APIRouter(tags=["blog"])


@router.get("/blog")
async def list_posts(db: AsyncSession = Depends(get_db)) -> dict:
    """Published posts, newest first."""
    return ok(await blog.list_published_posts(db))


@router.post("/blog")
async def create_post(
    data: BlogPostCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    post = await blog.create_post(
        db, user, data.title, data.content, data.excerpt, data.tags, data.status
    )
    return ok(post, "Blog post created successfully!")


@router.get("/blog/{post_id}")
async def get_post(
    post_id: int,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """A published post, or an unpublished one for its author and staff."""
    return ok(await blog.get_post_detail(db, post_id, viewer))


@router.put("/blog/{post_id}")
async def update_post(
    post_id: int,
    data: BlogPostUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    post = await blog.update_post(db, post_id, user, data.model_dump(exclude_unset=True))
    return ok(post, "Blog post updated successfully!")


@router.delete("/blog/{post_id}")
async def delete_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await blog.delete_post(db, post_id, user)
    return ok(message="Blog post deleted successfully!")


@router.get("/comments")
async def list_comments(
    post_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return ok(await comments.list_comments(db, post_id))


@router.post("/comments")
async def create_comment(
    data: CommentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    comment = await comments.create_comment(db, user, data.post_id, data.content)
    return ok(comment, "Comment created successfully!")


@router.put("/comments/{comment_id}")
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    comment = await comments.update_comment(db, comment_id, user, data.content)
    return ok(comment, "Comment updated successfully!")


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await comments.delete_comment(db, comment_id, user)
    return ok(message="Comment deleted successfully!")
