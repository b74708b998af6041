# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database models."""

from ieca_server.models.base import Base
from ieca_server.models.user import User
from ieca_server.models.password_reset import PasswordResetToken
from ieca_server.models.notification import Notification
from ieca_server.models.blog import BlogPost, Comment
from ieca_server.models.resource import Resource
from ieca_server.models.global_chat import (
    GlobalChatMember,
    GlobalChatMessage,
    GlobalChatReaction,
    GlobalChatRoom,
)
from ieca_server.models.email import EmailLog, EmailTemplate
from ieca_server.models.security_tool import SecurityTool, SecurityToolUsage

__all__ = [
    "Base",
    "User",
    "PasswordResetToken",
    "Notification",
    "BlogPost",
    "Comment",
    "Resource",
    "GlobalChatRoom",
    "GlobalChatMember",
    "GlobalChatMessage",
    "GlobalChatReaction",
    "EmailTemplate",
    "EmailLog",
    "SecurityTool",
    "SecurityToolUsage",
]
