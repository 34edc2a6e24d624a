"""
Student API

Registration, login, directory and profile endpoints for students.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.api.deps import get_current_principal, get_current_student
from thesishub.core.database import get_db
from thesishub.core.exceptions import AuthorizationError, StudentNotFoundError
from thesishub.models import Student
from thesishub.schemas.account import StudentRegister, StudentLogin, StudentUpdate, StudentResponse
from thesishub.services.access import Principal
from thesishub.services.auth_service import AuthService
from thesishub.services.entity_store import EntityStore
from thesishub.services.group_service import GroupService

router = APIRouter()


async def get_student_or_404(student_id: str, db: AsyncSession) -> Student:
    student = await EntityStore(db).find_one(Student, student_id=student_id)
    if not student:
        raise StudentNotFoundError(student_id)
    return student


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_student(data: StudentRegister, db: AsyncSession = Depends(get_db)):
    """Register a new student account"""
    student = await AuthService(db).register_student(data.model_dump())
    return {
        "success": True,
        "message": "Student created successfully",
        "student": StudentResponse.model_validate(student),
    }


@router.post("/login")
async def login_student(data: StudentLogin, db: AsyncSession = Depends(get_db)):
    student, token = await AuthService(db).login_student(data.student_id, data.password)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "student": StudentResponse.model_validate(student),
    }


@router.get("")
async def list_students(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    students = await EntityStore(db).list(Student)
    return {
        "success": True,
        "count": len(students),
        "students": [StudentResponse.model_validate(s) for s in students],
    }


@router.get("/available-for-invitation")
async def available_for_invitation(
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    """Students a group leader can still invite"""
    current = await get_student_or_404(principal.subject, db)
    if not current.is_group_admin:
        raise AuthorizationError("Only group leaders can invite students", code="NOT_GROUP_ADMIN")

    students = await GroupService(db).available_students(principal.subject)
    return {
        "success": True,
        "count": len(students),
        "students": [StudentResponse.model_validate(s) for s in students],
    }


@router.get("/me")
async def get_my_profile(
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    student = await get_student_or_404(principal.subject, db)
    return {"success": True, "student": StudentResponse.model_validate(student)}


@router.put("/me")
async def update_my_profile(
    data: StudentUpdate,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    student = await get_student_or_404(principal.subject, db)
    student = await AuthService(db).update_student_profile(student, data.model_dump(exclude_unset=True))
    return {
        "success": True,
        "message": "Profile updated",
        "student": StudentResponse.model_validate(student),
    }


@router.get("/{student_id}")
async def get_student(
    student_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    student = await get_student_or_404(student_id, db)
    return {"success": True, "student": StudentResponse.model_validate(student)}
