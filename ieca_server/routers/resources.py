# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Learning resource API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ieca_server.api.envelope import ok
from ieca_server.api.schemas import ResourceCreate, ResourceResponse, ResourceUpdate
from ieca_server.auth import require_admin
from ieca_server.database import get_db
from ieca_server.models import User
from ieca_server.services import resources

router = APIRouter(prefix="/resources", tags=["resources"])


@router.get("")
async def list_resources(
    category: str | None = Query(None),
    difficulty: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    items = await resources.list_resources(db, category, difficulty)
    return ok([ResourceResponse.model_validate(r) for r in items])


@router.post("")
async def create_resource(
    data: ResourceCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    resource = await resources.create_resource(db, **data.model_dump())
    return ok(ResourceResponse.model_validate(resource), "Resource created successfully!")


@router.get("/{resource_id}")
async def get_resource(resource_id: int, db: AsyncSession = Depends(get_db)) -> dict:
    """Fetch a resource. Each fetch counts as a view."""
    resource = await resources.get_resource(db, resource_id)
    return ok(ResourceResponse.model_validate(resource))


@router.post("/{resource_id}/download")
async def record_download(resource_id: int, db: AsyncSession = Depends(get_db)) -> dict:
    resource = await resources.record_download(db, resource_id)
    return ok(ResourceResponse.model_validate(resource))


@router.put("/{resource_id}")
async def update_resource(
    resource_id: int,
    data: ResourceUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    resource = await resources.update_resource(db, resource_id, data.model_dump(exclude_unset=True))
    return ok(ResourceResponse.model_validate(resource), "Resource updated successfully!")


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await resources.delete_resource(db, resource_id)
    return ok(message="Resource deleted successfully!")
