"""Admin authentication and account management"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.api.deps import get_current_admin
from thesishub.core.database import get_db
from thesishub.models import Admin
from thesishub.schemas.account import AdminCreate, AdminLogin, AdminResponse
from thesishub.services.access import Principal
from thesishub.services.auth_service import AuthService
from thesishub.services.entity_store import EntityStore

router = APIRouter()


@router.post("/login")
async def login_admin(data: AdminLogin, db: AsyncSession = Depends(get_db)):
    admin, token = await AuthService(db).login_admin(data.username, data.password)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "admin": AdminResponse.model_validate(admin),
    }


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_admin(
    data: AdminCreate,
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    admin = await AuthService(db).create_admin(data.username, data.password, data.email, role=data.role)
    return {
        "success": True,
        "message": f"Admin '{admin.username}' created",
        "admin": AdminResponse.model_validate(admin),
    }


@router.get("/me")
async def get_admin_profile(
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    admin = await EntityStore(db).find_one(Admin, username=principal.subject)
    return {"success": True, "admin": AdminResponse.model_validate(admin)}
