# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Comments on blog posts."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.schemas import CommentResponse
from ieca_server.errors import NotFound, PermissionDenied
from ieca_server.models import Comment, User
from ieca_server.services.blog import get_post


def _comment_response(comment: Comment, author_name: str | None) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        content=comment.content,
        user_id=comment.user_id,
        post_id=comment.post_id,
        author_name=author_name,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


async def list_comments(db: AsyncSession, post_id: int) -> list[CommentResponse]:
    """Comments on a post, newest first."""
    await get_post(db, post_id)
    result = await db.execute(
        select(Comment, User.name)
        .join(User, Comment.user_id == User.id)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    return [_comment_response(c, name) for c, name in result.all()]


async def create_comment(db: AsyncSession, user: User, post_id: int, content: str) -> CommentResponse:
    await get_post(db, post_id)
    comment = Comment(content=content, user_id=user.id, post_id=post_id)
    db.add(comment)
    await db.commit()
    return _comment_response(comment, user.name)


async def _get_comment(db: AsyncSession, comment_id: int) -> Comment:
    comment = await db.get(Comment, comment_id)
    if not comment:
        raise NotFound("Comment not found")
    return comment


async def update_comment(db: AsyncSession, comment_id: int, user: User, content: str) -> CommentResponse:
    """Only the author may edit a comment."""
    comment = await _get_comment(db, comment_id)
    if comment.user_id != user.id:
        raise PermissionDenied("You can only edit your own comments")
    comment.content = content
    await db.commit()
    return _comment_response(comment, user.name)


async def delete_comment(db: AsyncSession, comment_id: int, user: User) -> None:
    """The author or a moderator may delete a comment."""
    comment = await _get_comment(db, comment_id)
    if comment.user_id != user.id and not user.is_staff:
        raise PermissionDenied("You can only delete your own comments")
    await db.delete(comment)
    await db.commit()
