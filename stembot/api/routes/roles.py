"""
stembot.api.routes.roles — Role sync endpoints
================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from stembot.api.deps import get_synchronizer, require_api_token
from stembot.services.role_sync_service import RoleSynchronizer

router = APIRouter(
    prefix="/roles",
    tags=["roles"],
    dependencies=[Depends(require_api_token)],
)

Synchronizer = Annotated[RoleSynchronizer, Depends(get_synchronizer)]


class RolesSyncRequest(BaseModel):
    discord_uid: int = Field(gt=0)


@router.post("/sync")
async def sync_roles(body: RolesSyncRequest, synchronizer: Synchronizer):
    """Sync one member.  Answers 502 when some role updates failed."""
    result = await synchronizer.sync_member(body.discord_uid)
    if not result.ok:
        return JSONResponse(status_code=502, content=result.to_dict())
    return result.to_dict()


@router.post("/sync-all")
async def sync_all_roles(synchronizer: Synchronizer):
    result = await synchronizer.sync_all()
    return result.to_dict()
