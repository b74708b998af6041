# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""In-memory rate limiting for auth endpoints (brute-force and reset-spam protection)."""

import time
from collections import defaultdict, deque

from fastapi import HTTPException, Request

# (client_key, endpoint) -> request timestamps in window
_buckets: defaultdict[tuple[str, str], deque[float]] = defaultdict(deque)
# Window seconds; max requests per window per endpoint
WINDOW = 60
LIMITS: dict[str, int] = {
    "/api/v1/auth/login": 10,
    "/api/v1/auth/register": 5,
    "/api/v1/auth/forgot-password": 5,
    "/api/v1/auth/reset-password": 10,
    "/api/v1/auth/change-password": 10,
}


def _client_key(request: Request) -> str:
    """Prefer X-Forwarded-For when behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host or "unknown"
    return "unknown"


def _clean_old(bucket: deque[float], now: float) -> None:
    cutoff = now - WINDOW
    while bucket and bucket[0] < cutoff:
        bucket.popleft()


def reset() -> None:
    """Forget all recorded requests."""
    _buckets.clear()


def check_rate_limit(request: Request, path: str) -> None:
    """Raise 429 if the client has exceeded the limit for this path."""
    limit = LIMITS.get(path)
    if limit is None:
        return
    now = time.monotonic()
    bucket = _buckets[(_client_key(request), path)]
    _clean_old(bucket, now)
    if len(bucket) >= limit:
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again later.",
        )
    bucket.append(now)


async def rate_limit_auth_dep(request: Request) -> None:
    """FastAPI dependency: rate limit auth endpoints listed in LIMITS."""
    check_rate_limit(request, request.url.path.rstrip("/"))
