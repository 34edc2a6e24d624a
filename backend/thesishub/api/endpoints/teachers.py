"""Teacher API: registration, login, directory and profile"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from thesishub.api.deps import get_current_principal, get_current_teacher
from thesishub.core.database import get_db
from thesishub.core.exceptions import TeacherNotFoundError
from thesishub.models import Teacher, TeacherStatus
from thesishub.schemas.account import TeacherRegister, TeacherLogin, TeacherUpdate, TeacherResponse
from thesishub.services.access import Principal
from thesishub.services.auth_service import AuthService
from thesishub.services.entity_store import EntityStore

router = APIRouter()


async def get_teacher_or_404(teacher_id: str, db: AsyncSession) -> Teacher:
    teacher = await EntityStore(db).find_one(Teacher, teacher_id=teacher_id)
    if not teacher:
        raise TeacherNotFoundError(teacher_id)
    return teacher


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_teacher(data: TeacherRegister, db: AsyncSession = Depends(get_db)):
    teacher = await AuthService(db).register_teacher(data.model_dump(exclude_none=True))
    return {
        "success": True,
        "message": "Teacher created successfully",
        "teacher": TeacherResponse.model_validate(teacher),
    }


@router.post("/login")
async def login_teacher(data: TeacherLogin, db: AsyncSession = Depends(get_db)):
    teacher, token = await AuthService(db).login_teacher(data.teacher_id, data.password)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "teacher": TeacherResponse.model_validate(teacher),
    }


@router.get("")
async def list_teachers(
    status_filter: Optional[TeacherStatus] = Query(None, alias="status"),
    department: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    criteria = {}
    if status_filter:
        criteria["status"] = status_filter
    if department:
        criteria["department"] = department
    teachers = await EntityStore(db).filter(Teacher, **criteria)
    return {
        "success": True,
        "count": len(teachers),
        "teachers": [TeacherResponse.model_validate(t) for t in teachers],
    }


@router.get("/me")
async def get_my_profile(
    principal: Principal = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    teacher = await get_teacher_or_404(principal.subject, db)
    return {"success": True, "teacher": TeacherResponse.model_validate(teacher)}


@router.put("/me")
async def update_my_profile(
    data: TeacherUpdate,
    principal: Principal = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    teacher = await get_teacher_or_404(principal.subject, db)
    teacher = await AuthService(db).update_teacher_profile(teacher, data.model_dump(exclude_unset=True))
    return {
        "success": True,
        "message": "Profile updated",
        "teacher": TeacherResponse.model_validate(teacher),
    }


@router.get("/{teacher_id}")
async def get_teacher(
    teacher_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    teacher = await get_teacher_or_404(teacher_id, db)
    return {"success": True, "teacher": TeacherResponse.model_validate(teacher)}
