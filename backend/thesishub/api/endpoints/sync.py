"""Bulk import from the legacy browser export, and a quick data summary"""

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict

from thesishub.api.deps import get_current_admin
from thesishub.core.database import get_db
from thesishub.services.access import Principal
from thesishub.services.sync_service import SyncService

router = APIRouter()


@router.post("/frontend-data")
async def sync_frontend_data(
    payload: Dict[str, Any] = Body(...),
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Replace all data (admins excepted) with the uploaded export"""
    imported = await SyncService(db).import_data(payload)
    return {
        "success": True,
        "message": "Frontend data synchronized successfully",
        "imported": imported,
    }


@router.get("/status")
async def get_sync_status(
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return {"success": True, "backendData": await SyncService(db).status()}
