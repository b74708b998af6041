# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Learning resources with view and download counters."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.errors import NotFound
from ieca_server.models import Resource


async def list_resources(
    db: AsyncSession,
    category: str | None = None,
    difficulty: str | None = None,
) -> list[Resource]:
    """All resources, or only published ones matching the filters when any filter is given."""
    query = select(Resource)
    if category or difficulty:
        query = query.where(Resource.status == "PUBLISHED")
        if category:
            query = query.where(Resource.category == category)
        if difficulty:
            query = query.where(Resource.difficulty == difficulty)
    result = await db.execute(query.order_by(Resource.created_at.desc(), Resource.id.desc()))
    return list(result.scalars().all())


async def _get(db: AsyncSession, resource_id: int) -> Resource:
    resource = await db.get(Resource, resource_id)
    if not resource:
        raise NotFound("Resource not found")
    return resource


async def _increment(db: AsyncSession, resource_id: int, column: str) -> Resource:
    resource = await _get(db, resource_id)
    counter = getattr(Resource, column)
    await db.execute(
        update(Resource)
        .where(Resource.id == resource_id)
        .values({counter: counter + 1})
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(resource)
    return resource


async def get_resource(db: AsyncSession, resource_id: int) -> Resource:
    """Fetch a resource and count the view."""
    return await _increment(db, resource_id, "views")


async def record_download(db: AsyncSession, resource_id: int) -> Resource:
    return await _increment(db, resource_id, "downloads")


async def create_resource(db: AsyncSession, **fields) -> Resource:
    resource = Resource(**fields)
    db.add(resource)
    await db.commit()
    await db.refresh(resource)
    return resource


async def update_resource(db: AsyncSession, resource_id: int, changes: dict) -> Resource:
    resource = await _get(db, resource_id)
    for field, value in changes.items():
        setattr(resource, field, value)
    await db.commit()
    return resource


async def delete_resource(db: AsyncSession, resource_id: int) -> None:
    resource = await _get(db, resource_id)
    await db.delete(resource)
    await db.commit()
