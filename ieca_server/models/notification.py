# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Notification model."""

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ieca_server.models.base import Base, TimestampMixin

NOTIFICATION_TYPES = ("INFO", "SUCCESS", "WARNING", "ERROR")


class Notification(Base, TimestampMixin):
    """In-app notification addressed to one user."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), default="INFO", nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
