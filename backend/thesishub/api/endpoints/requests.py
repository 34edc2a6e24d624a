"""
Supervision Request API

Student sends -> teacher accepts/rejects -> admin approves/rejects.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from thesishub.api.deps import (
    get_current_admin, get_current_principal, get_current_student, get_current_teacher,
)
from thesishub.core.database import get_db
from thesishub.models import RequestStatus, Student
from thesishub.schemas.supervision import RequestCreate, RequestRespond, RequestFinalize, RequestResponse
from thesishub.services.access import Principal
from thesishub.services.entity_store import EntityStore
from thesishub.services.supervision_service import SupervisionService

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_request(
    data: RequestCreate,
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    request = await SupervisionService(db).send_request(
        data.group_id, data.teacher_id, data.proposal_id,
        message=data.message, requester_id=principal.subject,
    )
    return {
        "success": True,
        "message": "Supervision request sent",
        "request": RequestResponse.model_validate(request),
    }


@router.get("")
async def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    group_id: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Teachers see requests addressed to them, students their group's, admins everything"""
    service = SupervisionService(db)
    if principal.is_teacher:
        requests = await service.list_requests(teacher_id=principal.subject, status=status_filter)
    elif principal.is_student:
        student = await EntityStore(db).find_one(Student, student_id=principal.subject)
        requests = (
            await service.list_requests(group_id=student.group_id, status=status_filter)
            if student and student.group_id else []
        )
    else:
        requests = await service.list_requests(group_id=group_id, status=status_filter)

    return {
        "success": True,
        "count": len(requests),
        "requests": [RequestResponse.model_validate(r) for r in requests],
    }


@router.post("/{request_id}/respond")
async def respond_to_request(
    request_id: str,
    data: RequestRespond,
    principal: Principal = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    request = await SupervisionService(db).respond(
        request_id, data.decision, teacher_id=principal.subject, response_message=data.message
    )
    return {
        "success": True,
        "message": f"Request {request.status.value}",
        "request": RequestResponse.model_validate(request),
    }


@router.post("/{request_id}/finalize")
async def finalize_request(
    request_id: str,
    data: RequestFinalize,
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    request = await SupervisionService(db).finalize(
        request_id, data.decision, admin_username=principal.subject, admin_message=data.message
    )
    return {
        "success": True,
        "message": f"Request {request.status.value}",
        "request": RequestResponse.model_validate(request),
    }
