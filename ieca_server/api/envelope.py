# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Success envelope shared by all routes."""

from typing import Any


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Build {success: true, data?, message?}."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body
