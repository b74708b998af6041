# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Blog posts."""

import re

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.schemas import BlogPostResponse, CommentResponse
from ieca_server.errors import NotFound, PermissionDenied
from ieca_server.models import BlogPost, Comment, User


def slugify(title: str) -> str:
    slug = re.sub(r"\s+", "-", title.strip().lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return slug.strip("-") or "post"


async def _unique_slug(db: AsyncSession, title: str) -> str:
    base = slugify(title)
    taken = set(
        (await db.execute(select(BlogPost.slug).where(BlogPost.slug.like(f"{base}%")))).scalars()
    )
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def _post_response(
    post: BlogPost,
    author_name: str | None,
    comment_count: int,
    comments: list[CommentResponse] | None = None,
) -> BlogPostResponse:
    return BlogPostResponse(
        id=post.id,
        title=post.title,
        slug=post.slug,
        content=post.content,
        excerpt=post.excerpt,
        tags=list(post.tags or []),
        status=post.status,
        author_id=post.author_id,
        author_name=author_name,
        comment_count=comment_count,
        comments=comments,
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


async def list_published_posts(db: AsyncSession) -> list[BlogPostResponse]:
    comment_count = (
        select(func.count(Comment.id))
        .where(Comment.post_id == BlogPost.id)
        .correlate(BlogPost)
        .scalar_subquery()
    )
    result = await db.execute(
        select(BlogPost, User.name, comment_count)
        .join(User, BlogPost.author_id == User.id)
        .where(BlogPost.status == "PUBLISHED")
        .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
    )
    return [_post_response(post, name, count or 0) for post, name, count in result.all()]


async def get_post(db: AsyncSession, post_id: int) -> BlogPost:
    post = await db.get(BlogPost, post_id)
    if not post:
        raise NotFound("Blog post not found")
    return post


async def get_post_detail(db: AsyncSession, post_id: int, viewer: User | None = None) -> BlogPostResponse:
    """Post with author name and its comments. Unpublished posts are visible to the author and staff only."""
    from ieca_server.services.comments import list_comments

    post = await get_post(db, post_id)
    if post.status != "PUBLISHED" and not (viewer and (viewer.id == post.author_id or viewer.is_staff)):
        raise NotFound("Blog post not found")
    author = await db.get(User, post.author_id)
    comments = await list_comments(db, post_id)
    return _post_response(post, author.name if author else None, len(comments), comments)


async def create_post(
    db: AsyncSession,
    author: User,
    title: str,
    content: str,
    excerpt: str | None = None,
    tags: list[str] | None = None,
    status: str = "PUBLISHED",
) -> BlogPostResponse:
    post = BlogPost(
        title=title,
        slug=await _unique_slug(db, title),
        content=content,
        excerpt=excerpt,
        tags=tags or [],
        status=status,
        author_id=author.id,
    )
    db.add(post)
    await db.commit()
    return _post_response(post, author.name, 0)


def _check_can_edit(post: BlogPost, user: User) -> None:
    if post.author_id != user.id and not user.is_staff:
        raise PermissionDenied("You can only modify your own posts")


async def update_post(db: AsyncSession, post_id: int, user: User, changes: dict) -> BlogPostResponse:
    post = await get_post(db, post_id)
    _check_can_edit(post, user)
    if "title" in changes and changes["title"] != post.title:
        post.slug = await _unique_slug(db, changes["title"])
    for field, value in changes.items():
        setattr(post, field, value)
    await db.commit()
    author = await db.get(User, post.author_id)
    count = await db.scalar(select(func.count()).select_from(Comment).where(Comment.post_id == post.id))
    return _post_response(post, author.name if author else None, count or 0)


async def delete_post(db: AsyncSession, post_id: int, user: User) -> None:
    post = await get_post(db, post_id)
    _check_can_edit(post, user)
    await db.execute(delete(Comment).where(Comment.post_id == post.id))
    await db.delete(post)
    await db.commit()
