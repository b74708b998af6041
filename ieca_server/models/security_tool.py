# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Security tool catalogue and usage tracking."""

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ieca_server.models.base import Base, TimestampMixin

USAGE_STATUSES = ("PENDING", "COMPLETED", "FAILED")


class SecurityTool(Base):
    """A tool offered in the member portal (port scanner, hash cracker, ...)."""

    __tablename__ = "security_tools"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class SecurityToolUsage(Base, TimestampMixin):
    """One run of a tool by a user."""

    __tablename__ = "security_tool_usage"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tool_id: Mapped[int] = mapped_column(
        ForeignKey("security_tools.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    target: Mapped[str | None] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)
